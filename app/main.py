import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app import config
from app.database import engine, Base

# Models must be imported before create_all
from app.models.whop import Whop
from app.models.promo_code import PromoCode
from app.models.review import Review
from app.models.promo_submission import PromoCodeSubmission
from app.models.blog import BlogPost
from app.models.comment import Comment
from app.models.comment_vote import CommentVote
from app.models.offer_tracking import OfferTracking
from app.models.mailing_list import MailingListSubscriber

from app.api.whops import router as whops_router
from app.api.promo_submissions import router as promo_submissions_router
from app.api.comments import router as comments_router
from app.api.blog import router as blog_router
from app.api.tracking import router as tracking_router
from app.api.mailing_list import router as mailing_list_router
from app.api.data import router as data_router
from app.api.revalidate import router as revalidate_router
from app.api.reviews import router as reviews_router

logging.basicConfig(
    level=logging.DEBUG if config.debug_enabled() else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

Base.metadata.create_all(bind=engine)

app = FastAPI(
    title=config.BRAND_NAME,
    docs_url=None if config.ENV == "prod" else "/docs",
    redoc_url=None if config.ENV == "prod" else "/redoc"
)

origins = [
    config.SITE_URL,
    "http://localhost:3000" # Keep for local testing
]
if config.site_origin() not in origins:
    origins.append(config.site_origin())

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/health")
def health_check():
    return {"status": "ok"}

app.include_router(whops_router)
app.include_router(promo_submissions_router)
app.include_router(comments_router)
app.include_router(blog_router)
app.include_router(tracking_router)
app.include_router(mailing_list_router)
app.include_router(data_router)
app.include_router(revalidate_router)
app.include_router(reviews_router)

# Invalid bodies are a client error, not 422
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.info("Invalid input on %s: %s", request.url.path, exc.errors())
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid input", "issues": jsonable_encoder(exc.errors())},
    )
