"""Prompt sent to the text-generation model for AI-authorship estimation."""

_DETECTION_PROMPT = """You are an expert at telling machine-generated text apart from human writing.
Estimate the probability that the text between the markers below was generated by an AI model.
Answer with a single JSON object and nothing else, in exactly this form:
{{"probability": <number between 0 and 1>, "reasoning": "<one or two short sentences>"}}

<<<TEXT
{text}
TEXT>>>"""


def build_detection_prompt(text: str) -> str:
    return _DETECTION_PROMPT.format(text=text)
