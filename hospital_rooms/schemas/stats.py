from hospital_rooms.schemas.room import CamelModel


class StatsOverview(CamelModel):
    total_rooms: int = 0
    available_rooms: int = 0
    occupied_rooms: int = 0
    maintenance_rooms: int = 0
    reserved_rooms: int = 0
    blocked_rooms: int = 0
    average_rent: float = 0.0
    total_beds: int = 0
    available_beds: int = 0


class BranchStatusCount(CamelModel):
    branch: str
    status: str
    count: int


class RoomStats(CamelModel):
    overview: StatsOverview
    status_by_branch: list[BranchStatusCount] = []

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
