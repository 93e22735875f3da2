from imagery.models.profile import PlanTier, Profile, UserRole
from imagery.models.image_record import ImageRecord
from imagery.models.payment import Payment
from imagery.models.guest_preview import GuestPreview

__all__ = ['PlanTier', 'Profile', 'UserRole', 'ImageRecord', 'Payment', 'GuestPreview']
