"""Interfaces layer for taskline.

- cli: Typer demo programs
"""
