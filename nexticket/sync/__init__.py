"""Optimistic entity synchronizer"""
