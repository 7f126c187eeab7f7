"""
HTTP API for SmartCube Core
"""
