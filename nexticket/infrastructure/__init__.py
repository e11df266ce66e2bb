"""Infrastructure - settings and remote store clients"""
