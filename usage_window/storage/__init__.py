"""
Storage layer for raw usage and invoice tracking records.
"""
