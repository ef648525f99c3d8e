"""
Vercel entry point for the EduTicket AI API
"""
import os

# Set environment variables for serverless
os.environ.setdefault("ENVIRONMENT", "production")

from mangum import Mangum
from eduticket.infrastructure.database import init_database
from eduticket.main import app

# Lifespan is off, so open the engine here. Vector stores are attached
# by eduticket.main at import; both connect lazily on first use
init_database()

# Lambda handler for ASGI app (disable lifespan for serverless)
handler = Mangum(app, lifespan="off")
