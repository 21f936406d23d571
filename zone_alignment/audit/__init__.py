"""Audit records, reprojection statistics and alignment events."""
