"""Notification rules, dispatch, and inbox"""
