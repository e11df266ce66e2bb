"""File attachments"""
