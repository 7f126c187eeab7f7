"""
Utility modules for SmartCube Core
"""
