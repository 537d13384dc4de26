"""Podcast speaker enrichment.

Attaches speaker identity to podcast transcripts:
- Groups diarization segments into per-speaker clusters
- Identifies each cluster against a per-podcast voice registry
- Aligns transcript segments to diarization segments by interval overlap
- Produces enriched transcripts and audit artifacts for threshold tuning
"""

__version__ = "0.1.0"
