"""StudyForge backend: study notes, practice papers and summaries."""

__version__ = "0.1.0"
