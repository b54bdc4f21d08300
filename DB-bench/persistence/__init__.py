"""
Sample storage and result persistence for the DB benchmark.
"""
