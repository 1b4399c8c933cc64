"""
ModSentry - Rule-Based Discord Moderation Bot

ModSentry scores every guild message for spam, scam and harassment signals,
combines them with account and membership context, and applies a graded
moderation action.

Core Components:

- **Risk Classifier**: Deterministic pattern and behaviour scoring producing a
  0-100 risk score, a risk level and a recommended action
- **Action Executor**: Carries the action out, stepping down from kick to
  timeout to deletion when the bot is not allowed to act
- **Persistence**: SQLite record of users, message hashes, actions and warnings
- **Commands**: ``/verify`` for new accounts and ``/risk_profile`` for moderators

Usage:
    from modsentry.main import main
    main()
"""
