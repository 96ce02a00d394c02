"""
Command-line interface for running and managing pipelines.
"""
