from fastapi import APIRouter
from db_assistant.api.endpoints import auth, projects, dashboard, chat, database

api_router = APIRouter()

# Combine all sub-routers into one
api_router.include_router(auth.router)
api_router.include_router(projects.router)
api_router.include_router(dashboard.router)
api_router.include_router(chat.router)
api_router.include_router(database.router)
