"""Tagged result of an atomic insert-or-fetch store call"""

from dataclasses import dataclass
from typing import ClassVar, Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Inserted(Generic[T]):
    """The row did not exist and was created by this call"""

    record: T
    inserted: ClassVar[bool] = True


@dataclass(frozen=True)
class AlreadyExists(Generic[T]):
    """A row with the same unique key existed; it is returned unchanged"""

    record: T
    inserted: ClassVar[bool] = False


InsertResult = Union[Inserted[T], AlreadyExists[T]]
