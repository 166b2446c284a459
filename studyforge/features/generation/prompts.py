"""Prompt builders, one per content kind."""

from studyforge.models.generation import GenerationRequest

NOTE_SYSTEM_PROMPT = (
    "You are an expert educational content creator who specializes in creating "
    "high-quality, informative notes for students. You format your responses in "
    "clear, organized markdown."
)

PRACTICE_SYSTEM_PROMPT = (
    "You are an expert educational content creator who specializes in creating "
    "high-quality practice papers and examinations."
)

SUMMARY_SYSTEM_PROMPT = (
    "You summarize text faithfully. You never invent facts that are not in the source."
)

SUMMARY_LENGTH_GUIDE = {
    "short": "very concise, about 1-2 paragraphs",
    "medium": "moderately detailed, about 3-4 paragraphs",
    "long": "comprehensive, about 5-6 paragraphs",
}

SUMMARY_STYLE_GUIDE = {
    "concise": "straightforward and to the point",
    "detailed": "thorough with examples",
    "bullets": "using bullet points for key information",
    "academic": "formal and scholarly with proper citations if available",
}


def build_note_prompt(request: GenerationRequest) -> str:
    return (
        f"Generate comprehensive study notes for the subject: {request.param('subject')}, "
        f"topic: {request.param('topic')}, based on the following request: {request.param('prompt')}.\n"
        "Format the content with proper headings, subheadings, bullet points, and explanations.\n"
        "Include key concepts, definitions, examples, and applications where appropriate."
    )


def build_practice_prompt(request: GenerationRequest) -> str:
    # A caller-supplied prompt replaces the template entirely
    custom = request.param("prompt").strip()
    if custom:
        return custom

    difficulty = request.param("difficulty")
    return (
        f"Create a {difficulty} difficulty practice paper for {request.param('subject')} "
        f"focusing on {request.param('topic')}.\n\n"
        "Guidelines:\n"
        f"- Include exactly {request.param('questions')} questions\n"
        "- For math and science, include step-by-step solutions where appropriate\n"
        "- For essay subjects, provide clear evaluation criteria\n"
        "- Format the content with proper HTML: use <h1>, <h2>, <p>, <ul>, <li>, etc.\n"
        "- For multiple-choice questions, format options as A), B), C), D)\n"
        "- Include a mix of question types appropriate for the subject\n\n"
        "Format the practice paper with a clear title, instructions, and properly numbered questions.\n"
        "If relevant, provide an answer key section at the end."
    )


def build_summary_prompt(request: GenerationRequest) -> str:
    length = SUMMARY_LENGTH_GUIDE.get(request.param("length", "medium"), SUMMARY_LENGTH_GUIDE["medium"])
    style = SUMMARY_STYLE_GUIDE.get(request.param("style", "concise"), SUMMARY_STYLE_GUIDE["concise"])
    return f"Summarize the following text in a {length} style that is {style}:\n\n{request.param('text')}"
