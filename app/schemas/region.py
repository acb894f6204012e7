from pydantic import BaseModel, ConfigDict, Field


class Point(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float = Field(..., description="Horizontal page coordinate")
    y: float = Field(..., description="Vertical page coordinate")


class Rectangle(BaseModel):
    """Axis-aligned rectangle; y grows downwards, so top <= bottom."""

    model_config = ConfigDict(frozen=True)

    top: float = 0.0
    left: float = 0.0
    right: float = 0.0
    bottom: float = 0.0

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    def as_ltrb(self) -> list[float]:
        """Return the rectangle as a simple [left, top, right, bottom] list."""

        return [self.left, self.top, self.right, self.bottom]


class Region(BaseModel):
    """A recognized text area on one page of a document."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique within a document")
    text: str = ""
    page: int = Field(default=0, ge=0)
    points: tuple[Point, ...] = Field(..., min_length=1, description="Polygon, in drawing order")
    confidence: float | None = None
