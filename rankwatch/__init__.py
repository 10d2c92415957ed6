"""Rank watch package: per-group Apex rank tracking and change alerts.

Tracks subscribed players per chat group, polls their ranked score on a fixed
period, filters invalid or anomalous readings, and notifies the owning group
when a score changes. Also contains the command handlers, configuration,
logging support and the CLI entry point used by `rankwatch.rankwatch`.
"""
