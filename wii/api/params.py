from typing import Annotated

from fastapi import Path

from wii.models.orm import MAX_ID

PathId = Annotated[int, Path(ge=1, le=MAX_ID)]
