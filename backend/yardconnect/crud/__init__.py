from .crud_profile import profile
from . import crud_service_category
