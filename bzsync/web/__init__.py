"""Inspect viewer — a small local web app for browsing an update plan."""
