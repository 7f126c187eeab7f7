"""
SmartCube Core - visual workflow engine for typed cube graphs
"""
__version__ = "0.1.0"
