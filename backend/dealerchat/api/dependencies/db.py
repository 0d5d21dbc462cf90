"""Database dependency backed by the app-scoped Database."""

from fastapi import Request

from dealerchat.db.session import Database


def get_database(request: Request) -> Database:
    return request.app.state.database
