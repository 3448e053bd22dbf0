"""
Core engine for Medibill: coverage adjudication and JSON serialization.

Submodules are imported directly (``medibill.core.adjudicator``) because the
adjudicator depends on the domain package, which must finish loading first.
"""
