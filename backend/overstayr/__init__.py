"""Overstayr: visa expiry tracking with local reminders."""
