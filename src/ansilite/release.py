# Copyright (c) 2024 Ansilite Contributors
# MIT License

"""Ansilite release metadata."""

from __future__ import annotations

__version__ = "0.1.0"
__author__ = "Ansilite Contributors"
__codename__ = "Relay"
