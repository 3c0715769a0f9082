"""Cog package for Memberwarden (moderation commands, event listeners)."""
