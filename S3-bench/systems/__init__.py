"""
Object storage systems used for bucket setup.
"""
