"""
API orchestration boundary for the WPT what-if backend.

Design intent:
- Expose thin, typed endpoints for patient lookup, simulation, sweeps and the run log.
- Keep request validation explicit and failure modes predictable.
- Orchestrate modules without embedding scoring logic in routers.
"""
