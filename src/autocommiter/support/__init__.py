"""Low-level helpers shared by the pipeline and its adapters.

- Diagnostic log sink (diagnostics.py)

- Root-relative path validation (safe_paths.py)
"""
