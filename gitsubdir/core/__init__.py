"""
Core logic of git-subdir: URL parsing, tree filtering and orchestration.
"""
