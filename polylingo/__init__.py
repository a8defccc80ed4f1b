"""PolyLingo: WordPress translation job scheduler."""
