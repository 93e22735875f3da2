from imagery.routes.generate import router as generate_router
from imagery.routes.payment import router as payment_router
from imagery.routes.user import router as user_router
from imagery.routes.images import router as images_router
from imagery.routes.admin import router as admin_router

__all__ = ['generate_router', 'payment_router', 'user_router', 'images_router', 'admin_router']
