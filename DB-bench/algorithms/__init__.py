"""
Benchmark request algorithms.
"""
