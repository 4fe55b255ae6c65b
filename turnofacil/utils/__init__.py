"""
Utility helpers shared by services and routes
"""
