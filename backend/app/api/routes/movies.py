"""
Movie catalog endpoints with Redis caching on the list operation.
"""

from fastapi import APIRouter, Depends, Query, status

from app.core.logging import get_logger
from app.core.security import Principal, require_admin
from app.db.session import Database, get_db
from app.schemas.movie import (
    MovieCreate,
    MovieUpdate,
    MovieResponse,
    MovieListResponse,
    ShowtimeResponse,
)
from app.services.catalog_service import (
    create_movie,
    get_movie,
    list_movies,
    update_movie,
    delete_movie,
    get_movie_showtimes,
)
from app.services.cache_service import get_cached_movies, set_cached_movies, invalidate_movie_cache

logger = get_logger(__name__)
router = APIRouter(prefix="/movies", tags=["Movies"])


@router.post("", response_model=MovieResponse, status_code=status.HTTP_201_CREATED)
async def create_movie_endpoint(
    movie_data: MovieCreate,
    principal: Principal = Depends(require_admin),
    db: Database = Depends(get_db),
):
    """Create a movie with optional showtimes, each with an explicit seat map. Admin only."""
    movie = await create_movie(db, movie_data, principal.user_id)
    await invalidate_movie_cache()
    return movie


@router.get("", response_model=MovieListResponse)
async def list_movies_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Database = Depends(get_db),
):
    """
    List movies with pagination.
    Results are cached in Redis; the cache is invalidated on catalog changes.
    """
    cached = await get_cached_movies(page, page_size)
    if cached:
        logger.info("movies_list_cache_hit", page=page)
        cached["cached"] = True
        return MovieListResponse(**cached)

    movies, total = await list_movies(db, page, page_size)
    response_data = {
        "movies": [MovieResponse.model_validate(m).model_dump(mode="json") for m in movies],
        "total": total,
        "page": page,
        "page_size": page_size,
        "cached": False,
    }
    await set_cached_movies(page, page_size, response_data)
    return MovieListResponse(**response_data)


@router.get("/{movie_id}", response_model=MovieResponse)
async def get_movie_endpoint(movie_id: int, db: Database = Depends(get_db)):
    return await get_movie(db, movie_id)


@router.put("/{movie_id}", response_model=MovieResponse)
async def update_movie_endpoint(
    movie_id: int,
    movie_data: MovieUpdate,
    _: Principal = Depends(require_admin),
    db: Database = Depends(get_db),
):
    """
    Update movie fields and add or edit showtimes. Admin only.
    Regenerating a showtime's seats is refused (409) while any of them is booked.
    """
    movie = await update_movie(db, movie_id, movie_data)
    await invalidate_movie_cache()
    return movie


@router.delete("/{movie_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_movie_endpoint(
    movie_id: int,
    _: Principal = Depends(require_admin),
    db: Database = Depends(get_db),
):
    """Delete a movie and its showtimes/seats. Refused while bookings exist."""
    await delete_movie(db, movie_id)
    await invalidate_movie_cache()


@router.get("/{movie_id}/showtimes", response_model=list[ShowtimeResponse])
async def movie_showtimes_endpoint(movie_id: int, db: Database = Depends(get_db)):
    return await get_movie_showtimes(db, movie_id)
