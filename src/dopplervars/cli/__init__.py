"""
Command line interface for dopplervars.
"""
