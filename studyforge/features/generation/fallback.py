"""
Deterministic placeholder content used when the provider is unavailable.

Output depends only on the request parameters and the failure, never on
time or randomness, and always carries a visible label.
"""

from typing import Optional

from studyforge.features.generation.provider import ProviderNotConfiguredError
from studyforge.models.generation import GenerationRequest

FALLBACK_LABEL_UNCONFIGURED = "Demo Content"
FALLBACK_LABEL_FAILED = "AI Generation Failed"
SUMMARY_EXCERPT_CHARS = 500


def _label(error: Optional[BaseException]) -> str:
    if error is None or isinstance(error, ProviderNotConfiguredError):
        return FALLBACK_LABEL_UNCONFIGURED
    return FALLBACK_LABEL_FAILED


def _reason(error: Optional[BaseException]) -> str:
    if error is None:
        return "Unknown error"
    message = str(error).strip()
    return message or type(error).__name__


def build_note_fallback(request: GenerationRequest, error: Optional[BaseException]) -> str:
    title = request.param("title", "Study Notes")
    subject = request.param("subject", "the subject")
    topic = request.param("topic", "General Overview")

    if _label(error) == FALLBACK_LABEL_UNCONFIGURED:
        return (
            f"# {title} ({FALLBACK_LABEL_UNCONFIGURED})\n"
            f"## Introduction to {subject}: {topic}\n\n"
            "This is a placeholder note generated in demo mode because no text "
            "generation API key is configured.\n\n"
            "### Key Concepts\n"
            f"- First key concept about {topic}\n"
            "- Second important point to understand\n"
            "- Third fundamental idea\n\n"
            "### Detailed Explanation\n"
            f"The {topic} is an important concept in {subject}.\n"
            "Here we would normally have AI-generated comprehensive notes.\n\n"
            "### Examples\n"
            "1. Example one\n"
            "2. Example two\n"
            "3. Example three\n\n"
            "### Summary\n"
            f"These study notes provide a basic overview of {topic}.\n"
            "For more detailed content, please configure your GROQ_API_KEY."
        )

    return (
        f"# {title} ({FALLBACK_LABEL_FAILED})\n\n"
        f"## Introduction to {subject}: {topic}\n\n"
        "This is a fallback note because AI generation encountered an error.\n\n"
        "### Key Points\n"
        "- The API call to generate content failed\n"
        "- This is placeholder content instead\n"
        "- Please check your API configuration\n\n"
        f"Error details: {_reason(error)}\n\n"
        "For assistance, please check your GROQ_API_KEY and settings."
    )


def build_practice_fallback(request: GenerationRequest, error: Optional[BaseException]) -> str:
    label = _label(error)
    return (
        f"<h2>{request.param('title', 'Practice Paper')} ({label})</h2>\n"
        f"<p><strong>Subject:</strong> {request.param('subject')}</p>\n"
        f"<p><strong>Topic:</strong> {request.param('topic')}</p>\n"
        f"<p><strong>Difficulty:</strong> {request.param('difficulty')}</p>\n"
        f"<p><strong>Questions requested:</strong> {request.param('questions')}</p>\n"
        "<div class=\"alert alert-warning\">\n"
        "  <p>Sorry, we couldn't generate the practice paper at this time. Please try again later.</p>\n"
        "  <p>You can still create practice questions manually.</p>\n"
        "</div>\n"
        "<h3>Sample Question Format:</h3>\n"
        "<div class=\"question\">\n"
        "  <p><strong>1.</strong> Write your question here?</p>\n"
        "  <ul>\n"
        "    <li>A) Option 1</li>\n"
        "    <li>B) Option 2</li>\n"
        "    <li>C) Option 3</li>\n"
        "    <li>D) Option 4</li>\n"
        "  </ul>\n"
        "</div>"
    )


def build_summary_fallback(request: GenerationRequest, error: Optional[BaseException]) -> str:
    text = request.param("text").strip()
    excerpt = text[:SUMMARY_EXCERPT_CHARS]
    if len(text) > SUMMARY_EXCERPT_CHARS:
        excerpt = excerpt.rstrip() + "..."
    return (
        f"## Summary ({_label(error)})\n\n"
        f"Requested length: {request.param('length', 'medium')}; "
        f"style: {request.param('style', 'concise')}.\n\n"
        "An AI summary could not be generated, so the opening of the original "
        "text is shown instead:\n\n"
        f"> {excerpt}"
    )
