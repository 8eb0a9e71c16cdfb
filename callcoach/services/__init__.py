"""
Provider clients and the call processing pipeline
"""
