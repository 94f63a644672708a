"""
CrossX - publish a compiled contract once, deploy it to many chains at one address
"""

__version__ = "0.1.0"
