"""Camera-space marker pose estimation and multi-marker refinement."""
