"""
Backend Scripts Module

Maintenance scripts for the Memofy core database.

Available scripts:
    - seed_rbac.py: Creates indexes and the three role records
    - cleanup_expired_locks.py: Deletes expired edit locks (cron friendly)

Usage:
    python -m scripts.seed_rbac
    python -m scripts.cleanup_expired_locks
"""
