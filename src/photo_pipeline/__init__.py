"""Photo pipeline: batch image ingestion, deletion and signed access over S3."""

__version__ = "0.1.0"
