"""
Cohort comparison boundary for the WPT what-if simulator.

Design intent:
- Suggest comparable de-identified profiles for overlay comparison.
- Rank on device family, age proximity and shared history keywords only.
"""
