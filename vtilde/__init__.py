"""
V~ — Track your games, share the art, connect with people
===========================================================
REST backend for a social video-game cataloguing site: personal game
libraries with ratings and reviews, fan art with likes and comments,
follows, direct messages, notifications, activity feeds and leaderboards.

Package layout::

    vtilde/
    ├── __main__.py        # python -m vtilde → uvicorn
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Limits, frontend link builders
    ├── errors.py          # Domain exceptions → HTTP statuses
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # All ORM models
    ├── engine/
    │   ├── ranking.py     # Hot / recent / top orderings
    │   └── leaderboards.py # Artist + game rankings
    ├── services/
    │   ├── feed_service.py        # Popular / following / activity feeds
    │   ├── leaderboard_service.py # Loads candidates, ranks them
    │   ├── art_service.py         # Upload, delete cascade, likes, comments
    │   ├── social_service.py      # Follows, profiles, user search
    │   ├── library_service.py     # Library entries, reviews, game upsert
    │   ├── messaging_service.py   # Conversations + messages
    │   ├── notification_service.py # Notifications + activity writers
    │   ├── collection_service.py  # Game collections
    │   ├── game_catalog.py        # GiantBomb client
    │   └── upload_service.py      # Image storage
    └── api/
        ├── main.py        # FastAPI app + error handlers
        ├── auth.py        # Register / login → JWT
        ├── deps.py        # Dependency injection, viewer resolution
        ├── schemas.py     # camelCase request-body base
        └── routes/        # REST endpoints
"""

__version__ = "0.1.0"
