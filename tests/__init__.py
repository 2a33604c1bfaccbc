"""Test suite for the crmfields custom-field engine.

This package contains tests for:
- Definition loading and option normalization
- Semantic classification heuristics
- Input masks, display formatting and per-kind checks
- Dependency state machines and the address resolver
- Value store seeding, routing and record loading
- Validation, submission mapping and the FormSession pipeline
"""
