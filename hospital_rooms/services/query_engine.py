import asyncio
import math
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import ColumnElement, case, func, or_

from hospital_rooms.models.room import ROOM_STATUSES, Room
from hospital_rooms.repositories.room_repo import RoomRepository, active
from hospital_rooms.schemas.stats import BranchStatusCount, RoomStats, StatsOverview

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 50
# keeps (page - 1) * limit inside a 64-bit OFFSET
MAX_PAGE = 1_000_000_000


def _to_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def clamp_page(page: Any) -> int:
    return min(MAX_PAGE, max(1, _to_int(page, DEFAULT_PAGE)))


def clamp_limit(limit: Any) -> int:
    return min(MAX_LIMIT, max(1, _to_int(limit, DEFAULT_LIMIT)))


@dataclass
class RoomFilter:
    search: str | None = None
    status: str | None = None
    branch: str | None = None

    def predicates(self) -> list[ColumnElement[bool]]:
        where = [active()]
        if self.search and (term := self.search.strip()):
            where.append(
                or_(
                    Room.room_name.icontains(term, autoescape=True),
                    Room.room_number.icontains(term, autoescape=True),
                    Room.room_id.icontains(term, autoescape=True),
                )
            )
        if self.status:
            where.append(Room.status == self.status)
        if self.branch:
            where.append(Room.hospital_branch == self.branch)
        return where


@dataclass
class Pagination:
    current: int
    pages: int
    total: int
    limit: int


@dataclass
class RoomPage:
    rooms: list[Room] = field(default_factory=list)
    pagination: Pagination | None = None


class QueryEngine:
    """Read side: filtered listing and occupancy statistics over active rooms."""

    def __init__(self, rooms: RoomRepository):
        self.rooms = rooms

    async def list(
        self,
        page: Any = DEFAULT_PAGE,
        limit: Any = DEFAULT_LIMIT,
        search: str | None = None,
        status: str | None = None,
        branch: str | None = None,
    ) -> RoomPage:
        page, limit = clamp_page(page), clamp_limit(limit)
        where = RoomFilter(search=search, status=status, branch=branch).predicates()

        rooms, total = await asyncio.gather(
            self.rooms.find_page(where, offset=(page - 1) * limit, limit=limit),
            self.rooms.count(*where),
        )
        return RoomPage(
            rooms=rooms,
            pagination=Pagination(current=page, pages=math.ceil(total / limit), total=total, limit=limit),
        )

    async def stats(self) -> RoomStats:
        status_counts = [
            func.coalesce(func.sum(case((Room.status == status, 1), else_=0)), 0).label(
                f"{status.lower()}_rooms"
            )
            for status in ROOM_STATUSES
        ]
        overview_columns = [
            func.count(Room.id).label("total_rooms"),
            *status_counts,
            func.coalesce(func.avg(Room.rent_amount), 0).label("average_rent"),
            func.coalesce(func.sum(Room.total_beds), 0).label("total_beds"),
            func.coalesce(func.sum(Room.available_beds), 0).label("available_beds"),
        ]
        branch_columns = [
            Room.hospital_branch.label("branch"),
            Room.status.label("status"),
            func.count(Room.id).label("count"),
        ]

        overview_rows, branch_rows = await asyncio.gather(
            self.rooms.aggregate(overview_columns, active()),
            self.rooms.aggregate(
                branch_columns, active(), group_by=(Room.hospital_branch, Room.status)
            ),
        )
        overview = StatsOverview(**overview_rows[0]._mapping) if overview_rows else StatsOverview()
        return RoomStats(
            overview=overview,
            status_by_branch=[BranchStatusCount(**row._mapping) for row in branch_rows],
        )
