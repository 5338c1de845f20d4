"""Core (UI-agnostic) pivot logic.

This package contains:
- the dataset model (schema, records, pivot config, filter sets)
- key canonicalization and typed record access
- the pivot engine (filtering, tuple grouping, axis domains, aggregation)
- presentation helpers (header spans, flag coverage/styling, exports, charts)
- dataset loading (JSON -> dataclasses)
"""
