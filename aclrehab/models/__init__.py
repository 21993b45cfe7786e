from aclrehab.models.model_base import Base
from aclrehab.models.model_user import User
from aclrehab.models.model_user_profile import UserProfile
from aclrehab.models.model_measurement import Measurement
