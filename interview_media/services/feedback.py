"""Instant preview feedback shown before a recorded answer is submitted."""

from interview_media.core.models import AnalysisSample, MediaMode, PreviewFeedback

_STRENGTH_THRESHOLD = 70
_MAX_ITEMS = 3

# (sample field, strength, improvement)
_AUDIO_RULES = (
    ("volume", "Good volume level", "Speak a bit louder"),
    ("pace", "Good speaking pace", "Adjust your speaking pace"),
    ("clarity", "Clear articulation", "Work on clarity of speech"),
    ("confidence", "Confident delivery", "Work on sounding more confident"),
)
_VIDEO_RULES = _AUDIO_RULES + (
    ("facial_expressions", "Good facial expressions", "Use more expressive facial cues"),
    ("eye_contact", "Good eye contact", "Maintain better eye contact"),
)


def build_preview_feedback(sample: AnalysisSample | None, mode: MediaMode) -> PreviewFeedback:
    """Turn the last analysis sample into strengths and improvements.

    A metric above 70 counts as a strength. Both lists keep at most three
    entries and are never empty.
    """
    strengths: list[str] = []
    improvements: list[str] = []

    if sample is not None:
        rules = _VIDEO_RULES if mode is MediaMode.video else _AUDIO_RULES
        for field_name, strength, improvement in rules:
            value = getattr(sample, field_name)
            if value is not None and value > _STRENGTH_THRESHOLD:
                strengths.append(strength)
            else:
                improvements.append(improvement)

    if not strengths:
        strengths.append("Completed response")
    if not improvements:
        improvements.append("Practice more to improve delivery")

    share = len(strengths) / (len(strengths) + len(improvements))
    return PreviewFeedback(
        strengths=strengths[:_MAX_ITEMS],
        improvements=improvements[:_MAX_ITEMS],
        confidence_score=min(0.5 + share * 0.5, 1.0),
    )
