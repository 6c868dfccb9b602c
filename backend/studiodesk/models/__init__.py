from .auth import User, StaffProfile, SessionToken
from .tasks import Task, TaskAssignment
from .payments import Payment
from .ledgers import Expense, Tax
from .files import UploadTicket, StoredFile

__all__ = [
    'User', 'StaffProfile', 'SessionToken',
    'Task', 'TaskAssignment',
    'Payment',
    'Expense', 'Tax',
    'UploadTicket', 'StoredFile',
]
