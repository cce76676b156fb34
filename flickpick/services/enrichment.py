# flickpick/services/enrichment.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from flickpick.integrations.omdb import OMDbClient, RottenTomatoesClient, omdb_client, rt_client
from flickpick.integrations.tmdb import TMDBClient, image_url, tmdb_client
from flickpick.schemas import CastMember, RatingEntry

logger = logging.getLogger(__name__)

MAX_CAST = 4
MAX_KEYWORDS = 10

# upstream hiccups that degrade a facet to nulls instead of failing the lookup
_DEGRADED = (httpx.HTTPError, ValueError, TypeError, KeyError)


def _omdb_value(data: Dict[str, Any], key: str) -> Optional[str]:
    val = data.get(key)
    if not val or val == "N/A":
        return None
    return val


def parse_omdb(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map an OMDb payload to rating-entry fields. Actor names are returned under
    "actors" so the caller can resolve their headshots.
    """
    out: Dict[str, Any] = {}
    if data.get("Response") == "False":
        return out

    rating = _omdb_value(data, "imdbRating")
    if rating:
        out["imdb_rating"] = float(rating)
    if data.get("imdbID"):
        out["imdb_id"] = data["imdbID"]
    rated = _omdb_value(data, "Rated")
    if rated:
        out["content_rating"] = rated
    director = _omdb_value(data, "Director")
    if director:
        out["director"] = director.split(",")[0].strip()
    actors = _omdb_value(data, "Actors")
    if actors:
        out["actors"] = [a.strip() for a in actors.split(",") if a.strip()][:MAX_CAST]

    for r in data.get("Ratings") or []:
        if r.get("Source") == "Rotten Tomatoes":
            try:
                out["rt_critic_rating"] = int(str(r.get("Value", "")).rstrip("%"))
            except ValueError:
                pass
    return out


class RatingProvider:
    """
    Rating enrichment for one title/year, assembled from independent facets:
      - OMDb: IMDb rating, RT critic score, IMDb id, content rating, director, top cast
      - Rotten Tomatoes: audience score
      - TMDb: rating, vote count, backdrop, keywords, collection
      - TMDb people: director/cast headshots (memoized by name for the process lifetime)

    A facet whose key is missing or whose upstream fails contributes nulls; it never raises.
    """

    def __init__(
        self,
        omdb: Optional[OMDbClient] = None,
        tmdb: Optional[TMDBClient] = None,
        rt: Optional[RottenTomatoesClient] = None,
    ) -> None:
        self.omdb = omdb
        self.tmdb = tmdb
        self.rt = rt
        self._person_images: Dict[str, Optional[str]] = {}

    # ---------- facets ----------

    async def omdb_facet(self, title: str, year: int) -> Dict[str, Any]:
        if not self.omdb or not self.omdb.api_key:
            logger.debug("OMDb API key not set, skipping ratings lookup")
            return {}
        try:
            data = await self.omdb.by_title(title, year)
        except _DEGRADED as e:
            logger.warning("OMDb lookup failed for %s (%s): %s", title, year, e)
            return {}
        if data.get("Response") == "False":
            logger.info("OMDb: no result for %s (%s) - %s", title, year, data.get("Error"))
        out = parse_omdb(data)
        logger.info(
            "OMDb ratings for %s: IMDb=%s RT=%s id=%s",
            title, out.get("imdb_rating"), out.get("rt_critic_rating"), out.get("imdb_id"),
        )
        return out

    async def rt_audience_facet(self, title: str) -> Dict[str, Any]:
        if not self.rt:
            return {}
        try:
            return {"rt_audience_rating": await self.rt.audience_score(title)}
        except _DEGRADED as e:
            logger.warning("RT audience lookup failed for %s: %s", title, e)
            return {}

    async def tmdb_facet(self, title: str, year: int) -> Dict[str, Any]:
        if not self.tmdb or not self.tmdb.api_key:
            return {}
        try:
            results = await self.tmdb.search_movie(title, year)
            if not results:
                return {}
            hit = results[0]
            detail = await self.tmdb.movie_detail(int(hit["id"]), append=["keywords"])
        except _DEGRADED as e:
            logger.warning("TMDb movie lookup failed for %s (%s): %s", title, year, e)
            return {}

        keywords = ((detail.get("keywords") or {}).get("keywords")) or []
        collection = detail.get("belongs_to_collection") or {}
        return {
            "tmdb_rating": detail.get("vote_average", hit.get("vote_average")),
            "tmdb_vote_count": detail.get("vote_count", hit.get("vote_count")),
            "backdrop": image_url(detail.get("backdrop_path") or hit.get("backdrop_path"), "w780"),
            "keywords": [k["name"] for k in keywords if k.get("name")][:MAX_KEYWORDS],
            "collection": collection.get("name"),
        }

    async def person_image(self, name: str) -> Optional[str]:
        if name in self._person_images:
            return self._person_images[name]
        if not self.tmdb or not self.tmdb.api_key:
            return None
        try:
            results = await self.tmdb.search_person(name)
        except _DEGRADED as e:
            logger.warning("TMDb person lookup failed for %s: %s", name, e)
            self._person_images[name] = None
            return None
        # w92 is small, good for avatars
        img = image_url((results[0] if results else {}).get("profile_path"), "w92")
        self._person_images[name] = img
        return img

    async def _people(self, director: Optional[str], actors: List[str]) -> Dict[str, Any]:
        names = ([director] if director else []) + actors
        images = await asyncio.gather(*[self.person_image(n) for n in names])
        by_name = dict(zip(names, images))
        out: Dict[str, Any] = {"cast": [CastMember(name=a, image=by_name.get(a)) for a in actors]}
        if director:
            out["director_image"] = by_name.get(director)
        return out

    # ---------- lookups ----------

    async def enrich(self, title: str, year: int) -> RatingEntry:
        """Full lookup. Every entry field is explicitly set, null where nothing was found."""
        omdb, rt, tmdb = await asyncio.gather(
            self.omdb_facet(title, year),
            self.rt_audience_facet(title),
            self.tmdb_facet(title, year),
        )
        actors = omdb.pop("actors", [])
        people = await self._people(omdb.get("director"), actors)

        data: Dict[str, Any] = {name: None for name in RatingEntry.model_fields}
        data.update(cast=[], keywords=[])
        data.update(omdb)
        data.update(rt)
        data.update(tmdb)
        data.update(people)
        return RatingEntry.model_validate(data)

    async def primary(self, title: str, year: int) -> Dict[str, Any]:
        """Re-run only the OMDb facet (plus headshots for any new names)."""
        omdb = await self.omdb_facet(title, year)
        actors = omdb.pop("actors", [])
        if omdb.get("director") or actors:
            omdb.update(await self._people(omdb.get("director"), actors))
        return omdb


rating_provider = RatingProvider(omdb=omdb_client, tmdb=tmdb_client, rt=rt_client)
