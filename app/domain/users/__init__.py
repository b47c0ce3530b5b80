"""Users Domain - Current user profile"""
