"""Spotify authorization, token refresh and the per-request auth gate."""
