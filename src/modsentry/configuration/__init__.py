"""
Configuration management for ModSentry.

Application tunables live in ``config/app_config.yml``; secrets come from the
environment.
"""
