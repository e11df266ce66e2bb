"""Login and password hashing"""
