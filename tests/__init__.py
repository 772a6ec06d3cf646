"""
Tests for Agentic Structure Generation

This package contains tests for:
- Policy dataclasses and build settings
- Blueprint data model and pure transforms (sanitize, build order,
  expansion, station planning)
- Fast-path and full blueprint validation
- Orchestration (resilient client, pipeline, compound builds, routing,
  execution, CLI)
"""
