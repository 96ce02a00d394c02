"""
Core domain: models, validators, transforms and the record transformer.
"""
