"""
Core algorithm tests for the Edit Transducer.

Tests for:
- Lattice labels and sentinel resolution
- Region and edit operation models
- Forward-backward EM engine
- Model persistence
"""
