# app/schemas/stats.py

from pydantic import BaseModel


class PlatformStats(BaseModel):
    approved_students: int
    approved_tutors: int
    open_requests: int
    successful_matches: int
