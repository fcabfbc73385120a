"""Auth/session core, refresh-session stores, rate limiter and external collaborators."""
