"""
AdPilot campaign judgment core
"""
__version__ = "1.0.0"
