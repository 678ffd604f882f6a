"""Devfolio — developer portfolio and project showcase API.

Users register with an emailed one-time code, sign in with access/refresh
JWT cookies, and publish projects (media, tech stack, co-owners) that
anyone can browse.
"""

__version__ = "0.1.0"
