# (c) Copyright Datacraft, 2026
"""Secure document repository for case management."""
