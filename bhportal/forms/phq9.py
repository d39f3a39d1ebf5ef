"""
PHQ-9 depression screening questionnaire

Only the data needed to collect and validate the screening lives here;
clinical interpretation of the total is left to the reviewing clinician.
"""

from typing import Iterable, List, Tuple

PHQ9_QUESTIONS = (
    "Little interest or pleasure in doing things",
    "Feeling down, depressed, or hopeless",
    "Trouble falling or staying asleep, or sleeping too much",
    "Feeling tired or having little energy",
    "Poor appetite or overeating",
    "Feeling bad about yourself - or that you are a failure or have let yourself or your family down",
    "Trouble concentrating on things, such as reading the newspaper or watching television",
    "Moving or speaking so slowly that other people could have noticed. Or the opposite - "
    "being so fidgety or restless that you have been moving around a lot more than usual",
    "Thoughts that you would be better off dead, or of hurting yourself in some way",
)

PHQ9_RESPONSES = (
    (0, "Not at all"),
    (1, "Several days"),
    (2, "More than half the days"),
    (3, "Nearly every day"),
)

PHQ9_QUESTION_COUNT = len(PHQ9_QUESTIONS)
PHQ9_MAX_RESPONSE = PHQ9_RESPONSES[-1][0]
PHQ9_MAX_SCORE = PHQ9_QUESTION_COUNT * PHQ9_MAX_RESPONSE


def default_responses() -> List[int]:
    return [0] * PHQ9_QUESTION_COUNT


def phq9_total(responses: Iterable[int]) -> int:
    """
    Sum of the nine responses

    Raises:
        ValueError: when there are not nine responses or one is outside 0-3
    """
    responses = list(responses)
    if len(responses) != PHQ9_QUESTION_COUNT:
        raise ValueError(f"PHQ-9 needs {PHQ9_QUESTION_COUNT} responses, got {len(responses)}")
    for response in responses:
        if isinstance(response, bool) or not isinstance(response, int) \
                or not 0 <= response <= PHQ9_MAX_RESPONSE:
            raise ValueError(f"Invalid PHQ-9 response: {response!r}")
    return sum(responses)


def phq9_items() -> List[Tuple[int, str]]:
    """Numbered questions for rendering, starting at 1"""
    return list(enumerate(PHQ9_QUESTIONS, start=1))
