# main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select
from starlette.exceptions import HTTPException as StarletteHTTPException

from kspice.auth import hash_password
from kspice.config import ADMIN_EMAIL, ADMIN_PASSWORD, CORS_ORIGINS, PORT
from kspice.database import engine, init_db
from kspice.logger import logger
from kspice.models import Profile, User
from kspice.routers import account, admin, auth, cart, catalog, orders


def create_default_admin():
    email = ADMIN_EMAIL.strip().lower()
    with Session(engine) as session:
        if session.exec(select(User).where(User.email == email)).first():
            return
        logger.info(f"--- CREATING DEFAULT ADMIN {email} ---")
        admin_user = User(email=email, hashed_password=hash_password(ADMIN_PASSWORD), role="admin")
        session.add(admin_user)
        session.flush()
        session.add(Profile(id=admin_user.id, full_name="Administrator", email=email))
        session.commit()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    create_default_admin()
    logger.info("K-Spice API started")
    yield


app = FastAPI(title="K-Spice Storefront API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- ERROR HANDLERS ---
# Mọi lỗi đều trả về dạng {"error": "..."} để giao diện hiển thị thông báo
@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Dữ liệu không hợp lệ"
    if errors:
        first = errors[0]
        message = str(first.get("msg", message)).removeprefix("Value error, ")
        field = first.get("loc", ())[-1] if first.get("loc") else None
        if field and first.get("type") != "value_error":
            message = f"{field}: {message}"
    return JSONResponse(status_code=422, content={"error": message})


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(f"Database error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"error": "Lỗi cơ sở dữ liệu, vui lòng thử lại sau"})


@app.get("/")
def read_root():
    return {"status": "live", "message": "K-Spice API is running"}


app.include_router(auth.router)
app.include_router(account.router)
app.include_router(catalog.router)
app.include_router(cart.router)
app.include_router(orders.router)
app.include_router(admin.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
