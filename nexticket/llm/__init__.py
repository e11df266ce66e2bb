"""Gemini model access"""
