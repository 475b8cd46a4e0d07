"""
Command line interface for labimport.
"""
