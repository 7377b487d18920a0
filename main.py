import logging
import os
import random
from contextlib import asynccontextmanager
from datetime import date
from typing import Literal, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

# Load .env file before config reads the environment
load_dotenv()

import database  # noqa: E402
from matcher import (  # noqa: E402
    CandidateProfile,
    InvalidInput,
    MatchInput,
    NoMatchFound,
    RecentMatchWindow,
    find_match,
)

logger = logging.getLogger(__name__)

AUTH_TOKEN = os.getenv("AUTH_TOKEN", "changeme")
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
MATCH_RANDOM_SEED = os.getenv("MATCH_RANDOM_SEED")

if AUTH_TOKEN == "changeme":
    print("⚠ WARNING: AUTH_TOKEN is still 'changeme'. Please set a secure token in your .env")


@asynccontextmanager
async def lifespan(app: FastAPI):
    database.init_db()
    yield


app = FastAPI(title="VivahMatch Server", lifespan=lifespan)

# ----------------------
# Process-wide matching state
# ----------------------
recent_window = RecentMatchWindow()
match_rng = random.Random(int(MATCH_RANDOM_SEED)) if MATCH_RANDOM_SEED else random.Random()

# ----------------------
# Pydantic models
# ----------------------
Gender = Literal["Male", "Female"]


class ProfilePayload(BaseModel):
    name: str = Field(min_length=1)
    age: int = Field(ge=18, le=100)
    gender: Gender
    profession: Optional[str] = None
    qualification: Optional[str] = None
    marital_status: Optional[str] = None
    height: str
    birth_year: Optional[int] = None
    profile_picture: Optional[str] = None
    profile_picture_original: Optional[str] = None
    document: Optional[str] = None
    document_original: Optional[str] = None


class ProfileUpdatePayload(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    age: Optional[int] = Field(default=None, ge=18, le=100)
    gender: Optional[Gender] = None
    profession: Optional[str] = None
    qualification: Optional[str] = None
    marital_status: Optional[str] = None
    height: Optional[str] = None
    birth_year: Optional[int] = None
    profile_picture: Optional[str] = None
    profile_picture_original: Optional[str] = None
    document: Optional[str] = None
    document_original: Optional[str] = None

    # may be omitted, but never cleared
    @field_validator("name", "age", "gender", "height", "birth_year")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("field cannot be null")
        return v


class CustomOptionPayload(BaseModel):
    field_type: Literal["profession", "qualification", "height", "gender", "marital_status"]
    value: str = Field(min_length=1)


# ----------------------
# Middleware to check Bearer token for every request
# ----------------------
@app.middleware("http")
async def check_auth_middleware(request: Request, call_next):
    if request.url.path == "/":
        return await call_next(request)
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return JSONResponse(status_code=401, content={"detail": "Missing or invalid Authorization header"})
    token = auth_header.split("Bearer ")[1]
    if token != AUTH_TOKEN:
        return JSONResponse(status_code=403, content={"detail": "Invalid token"})
    return await call_next(request)


@app.get("/")
def root():
    return {"status": "ok", "service": "VivahMatch server"}


# ----------------------
# Profile endpoints
# ----------------------
@app.get("/api/profiles")
def list_profiles():
    return database.get_all_profiles()


@app.get("/api/profiles/search")
def search_profiles(
    gender: Optional[Gender] = None,
    profession: Optional[str] = None,
    marital_status: Optional[str] = None,
    birth_year: Optional[int] = None,
    height: Optional[str] = None,
    age: Optional[int] = None,
):
    return database.search_profiles(
        gender=gender,
        profession=profession,
        marital_status=marital_status,
        birth_year=birth_year,
        height=height,
        age=age,
    )


@app.get("/api/profiles/stats")
def profile_stats():
    return database.get_profile_stats()


@app.post("/api/profiles", status_code=201)
def create_profile(payload: ProfilePayload):
    profile = database.add_profile(payload.model_dump())
    logger.info("Created profile %s (%s)", profile["profile_id"], profile["gender"])
    return profile


@app.get("/api/profiles/{profile_id}")
def get_profile(profile_id: int):
    profile = database.get_profile(profile_id)
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


@app.put("/api/profiles/{profile_id}")
def update_profile(profile_id: int, payload: ProfileUpdatePayload):
    profile = database.update_profile(profile_id, payload.model_dump(exclude_unset=True))
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


@app.delete("/api/profiles/{profile_id}")
def delete_profile(profile_id: int):
    if not database.delete_profile(profile_id):
        raise HTTPException(status_code=404, detail="Profile not found")
    return {"status": "deleted", "id": profile_id}


# ----------------------
# Matching
# ----------------------
@app.post("/api/match")
def match(payload: MatchInput):
    candidates = [CandidateProfile(**p) for p in database.get_all_profiles()]
    try:
        result = find_match(payload, candidates, recent_window, match_rng)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NoMatchFound:
        logger.info("No match for %s (%s, %d)", payload.name, payload.gender, payload.age)
        raise HTTPException(status_code=404, detail="No compatible matches found")

    logger.info(
        "Matched %s with profile %d (score %d)",
        payload.name,
        result.matched_profile.id,
        result.compatibility_score,
    )
    body = result.model_dump(by_alias=True)
    body["inputProfile"]["birthYear"] = date.today().year - payload.age
    return body


# ----------------------
# Custom dropdown options
# ----------------------
@app.get("/api/custom-options/{field_type}")
def list_custom_options(field_type: str):
    return database.get_custom_options(field_type)


@app.post("/api/custom-options", status_code=201)
def create_custom_option(payload: CustomOptionPayload):
    return database.add_custom_option(payload.field_type, payload.value)


@app.delete("/api/custom-options/{option_id}")
def delete_custom_option(option_id: int):
    if not database.delete_custom_option(option_id):
        raise HTTPException(status_code=404, detail="Custom option not found")
    return {"status": "deleted", "id": option_id}


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host=API_HOST, port=API_PORT, log_level="info")
