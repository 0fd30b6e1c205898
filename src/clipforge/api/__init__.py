"""HTTP surface for the timeline editor and export jobs."""
