"""User administration"""
