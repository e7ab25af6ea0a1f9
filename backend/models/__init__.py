from models.base import Base
from models.college import College
from models.department import Department
from models.fee import Fee
from models.room import Room
from models.student import Student
from models.user import User

__all__ = [
	"Base",
	"College",
	"Department",
	"Fee",
	"Room",
	"Student",
	"User",
]
