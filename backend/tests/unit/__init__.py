"""Unit tests for the registry, resolver, lock manager, workflow and services"""
