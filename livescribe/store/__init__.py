"""Local persistence: documents, settings and transcript exports."""
