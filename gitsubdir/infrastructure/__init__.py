"""
Infrastructure helpers for git-subdir: logging, errors, retries and
rate-limit tracking.
"""
