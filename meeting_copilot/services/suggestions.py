"""
Merging and de-duplication of live suggestions
"""

from typing import List

from meeting_copilot.schemas.meeting import Action, Decision, Suggestions

TOPIC_SIMILARITY_THRESHOLD = 0.7
DECISION_SIMILARITY_THRESHOLD = 0.75
ACTION_SIMILARITY_THRESHOLD = 0.75

MAX_TOPICS = 8
MAX_DECISIONS = 10
MAX_ACTIONS = 15

# Number of trailing transcript fragments sent for live analysis
RECENT_FRAGMENT_COUNT = 15
MIN_ANALYSIS_CHARS = 20


def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance with unit cost for insertion, deletion and substitution."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            if char_a == char_b:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j - 1], previous[j], current[j - 1]))
        previous = current
    return previous[-1]


def similarity(first: str, second: str) -> float:
    """
    Normalized similarity in ``[0, 1]``.

    Comparison is case-insensitive and ignores surrounding whitespace; two
    empty strings are identical.
    """
    a = first.lower().strip()
    b = second.lower().strip()
    if a == b:
        return 1.0
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein_distance(a, b) / longest


def _is_substring(first: str, second: str) -> bool:
    a = first.lower().strip()
    b = second.lower().strip()
    return a in b or b in a


def deduplicate_topics(topics: List[str]) -> List[str]:
    """Collapse near-identical topics, keeping the longer wording in place."""
    unique: List[str] = []
    for topic in topics:
        for index, existing in enumerate(unique):
            if similarity(topic, existing) > TOPIC_SIMILARITY_THRESHOLD or _is_substring(topic, existing):
                if len(topic) > len(existing):
                    unique[index] = topic
                break
        else:
            unique.append(topic)
    return unique


def deduplicate_decisions(decisions: List[Decision]) -> List[Decision]:
    unique: List[Decision] = []
    for decision in decisions:
        if not any(
            similarity(decision.text, existing.text) > DECISION_SIMILARITY_THRESHOLD
            for existing in unique
        ):
            unique.append(decision)
    return unique


def deduplicate_actions(actions: List[Action]) -> List[Action]:
    """Collapse similar actions; a duplicate carrying an assignee or due date wins."""
    unique: List[Action] = []
    for action in actions:
        for index, existing in enumerate(unique):
            if similarity(action.text, existing.text) > ACTION_SIMILARITY_THRESHOLD:
                if (action.assignee and not existing.assignee) or (
                    action.due_date and not existing.due_date
                ):
                    unique[index] = action
                break
        else:
            unique.append(action)
    return unique


def deduplicate_suggestions(suggestions: Suggestions) -> Suggestions:
    return Suggestions(
        topics=deduplicate_topics(suggestions.topics),
        decisions=deduplicate_decisions(suggestions.decisions),
        actions=deduplicate_actions(suggestions.actions),
    )


def merge_suggestions(current: Suggestions, incoming: Suggestions) -> Suggestions:
    """Append ``incoming`` to ``current``, de-duplicate, then cap each list."""
    merged = deduplicate_suggestions(
        Suggestions(
            topics=[*current.topics, *incoming.topics],
            decisions=[*current.decisions, *incoming.decisions],
            actions=[*current.actions, *incoming.actions],
        )
    )
    return Suggestions(
        topics=merged.topics[:MAX_TOPICS],
        decisions=merged.decisions[:MAX_DECISIONS],
        actions=merged.actions[:MAX_ACTIONS],
    )


def recent_transcript(fragments: List[str]) -> str:
    return " ".join(fragments[-RECENT_FRAGMENT_COUNT:])
