"""Email summarization backends."""

from app.infrastructure.external.summarizer.http_summarizer import (
    HttpEmailSummarizer,
    build_summarizer,
)

__all__ = ["HttpEmailSummarizer", "build_summarizer"]
