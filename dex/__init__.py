"""
Sui DEX plumbing: normalized pool types, per-exchange adapters and the pool
registry with its token adjacency graph.
"""
