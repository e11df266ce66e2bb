"""AI analysis of records"""
