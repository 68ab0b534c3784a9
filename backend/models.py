import datetime as dt

from sqlmodel import Field, SQLModel


class Performance(SQLModel, table=True):
    __tablename__ = "performances"

    id: int | None = Field(default=None, primary_key=True)
    artist: str = Field(index=True)
    type: str  # Performance kind, e.g. 'Livehouse', 'Festival'
    province: str = Field(index=True)  # Free-form, may carry suffixes like 省 / 自治区
    city: str | None = Field(default=None)
    venue: str | None = Field(default=None)
    notes: str | None = Field(default=None)
    date: dt.date | None = Field(default=None, index=True)  # Performance date, not insertion time
    poster: str | None = Field(default=None)  # /api/uploads/<file> or None
    created_at: dt.datetime = Field(default_factory=lambda: dt.datetime.now(dt.UTC))
