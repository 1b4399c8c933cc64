"""
Moderation logic for ModSentry.

This package coordinates the moderation pipeline:

- **rules / risk_classifier**: Pure scoring of a `ModerationInput`
- **action_decider / reasoning**: Map a score to an action and an explanation
- **escalation / action_executor**: Carry the action out with fallback
- **moderation_pipeline**: Per-message orchestration with persistence
"""
