"""
Resource pools driven by the DB benchmark.
"""
