"""
Command line entry points for the S3 benchmark.
"""
