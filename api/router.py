from fastapi import APIRouter
from api.routes import auth, user, petani, admin, proyek, jejak, cs_chat, chat

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Auth"])
# Auth routes (prefix: /auth):
# - POST /register - Register an account with email and password (role PEMBELI)
# - POST /login - Authenticate with email/password and get access token
# - POST /logout - Logout user (client discards token)

api_router.include_router(user.router, prefix="/user", tags=["User"])
# User routes (prefix: /user):
# - GET /profile - Get current user's profile
# - PUT /profile - Update current user's profile
# - DELETE /delete - Delete current user's account and everything it owns
# - GET /projects - Id and name of the current user's projects

# Petani application routes (absolute paths):
# - POST /daftar-petani - Submit petani application (starts PENDING)
# - GET /petani-application/status - Status of the caller's own application
api_router.include_router(petani.router, tags=["Petani"])

api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
# Admin routes (prefix: /admin):
# - GET /petani-applications - List applications (status, page, limit)
# - GET /petani-applications/{application_id} - Application detail
# - PATCH /petani-applications - Change application status (APPROVED promotes the user)
# - DELETE /petani-applications/{application_id} - Delete application
# - GET /messages - List customer-service messages
# - POST /reply - Reply to a customer-service message
# - PATCH /messages/{message_id}/read - Mark a customer-service message as read

# Proyek & produk routes (absolute paths):
# - POST/GET /proyek, GET/PUT/DELETE /proyek/{proyek_id}
# - POST /proyek/{proyek_id}/fase, GET/PUT/DELETE /proyek/{proyek_id}/fase/{fase_id}
# - POST/GET /products
# - GET /farmers
# - GET /stats
# - GET /projects - Public project listing (type: new, active, harvest)
# - GET /dashboard/stats - Numbers for the calling petani
# - POST /profile-view - Count a visit to a petani profile
api_router.include_router(proyek.router, tags=["Proyek"])

# Jejak (social feed) routes (absolute paths):
# - GET/POST /farming-updates, DELETE /farming-updates/{update_id}
# - GET /updates - Public update listing (type: recent, popular)
# - POST/DELETE /like
# - POST /comment, GET /comment/{farming_update_id}
api_router.include_router(jejak.router, tags=["Jejak"])

api_router.include_router(cs_chat.router, prefix="/cs-chat", tags=["CS Chat"])
# CS chat routes (prefix: /cs-chat):
# - POST "" - Send a message to customer service
# - GET /history - Message history for an email
# - DELETE /delete - Delete all messages of an email

# - POST /chat - TaniBot chatbot
api_router.include_router(chat.router, tags=["Chatbot"])
