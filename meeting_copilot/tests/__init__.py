"""
Test suite
"""
