"""brickORM active-record layer."""
from brickorm.orm.fields import Field
from brickorm.orm.record import LoadState, Record

__all__ = ["Field", "LoadState", "Record"]
