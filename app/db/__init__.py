"""
Database module for the iTECHS Learning Platform

Contains seed data and database utilities.
"""
from app.db.seed_data import ensure_super_admin, seed_demo_data, seed_all, clear_all

__all__ = ["ensure_super_admin", "seed_demo_data", "seed_all", "clear_all"]
