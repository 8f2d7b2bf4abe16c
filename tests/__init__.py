# tests/__init__.py
"""
Test Suite for odb-builder

Organization:
- option/mode/output/link tests: pure functions, no filesystem beyond tmp_path model files.
- graph/pipeline tests: graph emission and target wiring against an in-memory Project.
- runner/discovery/cli tests: subprocess boundaries are monkeypatched; no real ODB needed.
"""
