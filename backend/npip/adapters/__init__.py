"""
External adapters
"""
