"""Zone calibration, rigid alignment, scoring and drift tracking."""
