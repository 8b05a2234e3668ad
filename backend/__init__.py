"""
WPT what-if risk simulator backend package.

Design intent:
- Keep the scoring core (risk model, resolver, sweep engine) pure and stateless.
- Keep entity lookup, run logging and exports as thin service plumbing around it.
"""
