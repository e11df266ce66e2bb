"""Per-session application context"""
