from .user import User
from .profile import Profile, Education, Certificate

__all__ = [
    "User",
    # Profile models
    "Profile", "Education", "Certificate",
]
