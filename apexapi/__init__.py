"""Client package for the Apex Legends stats bridge.

Holds the resilient player-stats fetcher (`apexapi.apexapi`), the static
translation and legend tier tables (`apexapi.translations`), and small parsing
helpers for the realtime activity text (`apexapi.utils`).
"""
