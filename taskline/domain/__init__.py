"""Domain layer for taskline.

Pure value types and algorithms with no I/O:

- task: snapshots, progress units and tree topology
"""
