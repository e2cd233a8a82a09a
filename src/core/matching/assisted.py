# src/core/matching/assisted.py
"""
Ранжирование заявок через внешний сервис инференса (OpenRouter).

Попытка возвращает AssistedResult, а не бросает исключения.
Откат на детерминированный скоринг делает with_fallback().
"""

from __future__ import annotations

import asyncio
import json
import math
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Optional

import httpx

from src.common.constants import TypeMsg
from src.common.logger import log_info, log_warning
from src.core.jobs.models import JobRecord
from src.core.matching.models import JobScore, MatchingCriteria, rank_scores
from src.core.users.models import DriverProfile

PROMPT_TEMPLATE = """
You are an AI job matching system for a waste collection logistics platform.
Match jobs to drivers based on their profile, preferences, and job requirements.

Driver Profile:
{driver}

Available Jobs:
{jobs}

Please analyze and rank the jobs by suitability for this driver. Consider:
1. Proximity to driver location
2. Vehicle capacity vs job volume
3. Driver preferences and working hours
4. Job urgency and payment
5. Driver experience and rating

Return a JSON response with this structure:
{{
  "matches": [
    {{
      "jobId": "job_id",
      "score": 0.85,
      "reasons": ["Within 5km", "Matches vehicle capacity", "High payment"]
    }}
  ]
}}
"""


class InferenceError(Exception):
    """Сервис инференса недоступен или вернул непригодный ответ."""


def _point(coordinate) -> Optional[dict[str, float]]:
    if coordinate is None:
        return None
    return {"lat": coordinate.lat, "lng": coordinate.lng}


def build_payload(
    driver: DriverProfile,
    criteria: MatchingCriteria,
    jobs: Iterable[JobRecord],
) -> dict[str, Any]:
    """Данные водителя и заявок для запроса к сервису."""
    capacity = driver.vehicle_capacity
    if capacity is None:
        capacity = criteria.vehicle_capacity

    return {
        "driver": {
            "id": driver.id,
            "name": driver.name,
            "location": {"coordinates": _point(driver.coordinates)},
            "vehicle": {"capacity": capacity},
            "preferences": {
                "maxDistance": criteria.max_distance_km,
                "workingHours": {"start": criteria.work_start, "end": criteria.work_end},
                "preferredJobTypes": sorted(criteria.preferred_categories),
            },
            "rating": driver.rating,
            "completedJobs": driver.completed_jobs,
        },
        "jobs": [
            {
                "id": job.id,
                "jobType": job.category,
                "volume": job.volume,
                "contamination": job.contamination,
                "qualityGrade": job.quality_grade,
                "pickupLocation": {
                    "city": job.pickup_city,
                    "coordinates": _point(job.pickup),
                },
                "deliveryLocation": {"coordinates": _point(job.delivery)},
                "urgency": job.urgency.value,
                "payment": job.price,
            }
            for job in jobs
        ],
    }


def parse_matches(content: str) -> list[Any]:
    """
    Достаёт список matches из текста ответа модели.

    Raises:
        InferenceError: если ответ не JSON или в нём нет списка matches
    """
    text = content.strip()
    # Модели часто заворачивают JSON в ```json ... ```
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]

    try:
        data = json.loads(text)
    except ValueError as e:
        raise InferenceError(f"Ответ не является JSON: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("matches"), list):
        raise InferenceError("В ответе нет списка matches")

    return data["matches"]


class InferenceClient:
    """Клиент OpenAI-совместимого chat completions API."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
    ) -> None:
        """
        Args:
            api_key: Ключ OpenRouter (из конфига если None)
            base_url: Базовый URL API (из конфига если None)
            model: Имя модели (из конфига если None)
            timeout: Таймаут HTTP запроса (из конфига если None)
        """
        from src.config import settings
        inference = settings.inference

        self._api_key = api_key if api_key is not None else inference.OPENROUTER_API_KEY
        self._base_url = (base_url or inference.INFERENCE_BASE_URL).rstrip("/")
        self._model = model or inference.INFERENCE_MODEL
        self._temperature = inference.INFERENCE_TEMPERATURE
        self._max_tokens = inference.INFERENCE_MAX_TOKENS
        self._app_title = inference.APP_TITLE
        self._client = httpx.AsyncClient(
            timeout=timeout if timeout is not None else inference.INFERENCE_TIMEOUT
        )

    async def close(self) -> None:
        """Закрывает HTTP клиент."""
        await self._client.aclose()

    async def rank(self, payload: dict[str, Any]) -> list[Any]:
        """
        Запрашивает ранжирование заявок.

        Args:
            payload: Результат build_payload()

        Returns:
            Сырой список matches из ответа

        Raises:
            InferenceError: ключ не задан, ошибка HTTP, пустой или битый ответ
        """
        if not self._api_key:
            raise InferenceError("Ключ OpenRouter не настроен")

        prompt = PROMPT_TEMPLATE.format(
            driver=json.dumps(payload["driver"], indent=2, ensure_ascii=False),
            jobs=json.dumps(payload["jobs"], indent=2, ensure_ascii=False),
        )

        response = await self._client.post(
            f"{self._base_url}/chat/completions",
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
                "X-Title": self._app_title,
            },
            json={
                "model": self._model,
                "messages": [{"role": "user", "content": prompt}],
                "temperature": self._temperature,
                "max_tokens": self._max_tokens,
            },
        )

        if response.status_code != 200:
            raise InferenceError(f"OpenRouter API error: {response.status_code}")

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            content = None

        if not isinstance(content, str) or not content.strip():
            raise InferenceError("Пустой ответ модели")

        return parse_matches(content)


@dataclass(frozen=True)
class AssistedResult:
    """Результат попытки ранжирования через сервис инференса."""
    ok: bool
    scores: tuple[JobScore, ...] = ()
    error: Optional[str] = None
    dropped: int = 0

    @classmethod
    def success(cls, scores: Iterable[JobScore], dropped: int = 0) -> "AssistedResult":
        return cls(ok=True, scores=tuple(rank_scores(scores)), dropped=dropped)

    @classmethod
    def failure(cls, error: str, dropped: int = 0) -> "AssistedResult":
        return cls(ok=False, error=error, dropped=dropped)


def _as_score(value: Any) -> Optional[float]:
    """Конечное вещественное число или None. bool и строки не принимаются."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    value = float(value)
    if not math.isfinite(value):
        return None
    return max(0.0, min(1.0, value))


def _as_reasons(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    if isinstance(value, list):
        return tuple(str(item) for item in value)
    return ()


def validate_matches(
    raw: Iterable[Any],
    pool: Iterable[JobRecord],
    driver_id: str,
) -> tuple[list[JobScore], int]:
    """
    Сверяет ответ сервиса с пулом заявок.

    Запись отбрасывается по отдельности, если это не объект, jobId нет
    в пуле (или заявка не открыта), score не конечное число либо jobId
    уже встречался. Score вне [0, 1] прижимается к границе.

    Returns:
        (принятые оценки, число отброшенных записей)
    """
    jobs_by_id = {job.id: job for job in pool if job.is_open}
    accepted: list[JobScore] = []
    seen: set[str] = set()
    dropped = 0

    for entry in raw:
        if not isinstance(entry, dict):
            dropped += 1
            continue

        job_id = entry.get("jobId")
        job_id = str(job_id) if job_id is not None else None
        job = jobs_by_id.get(job_id) if job_id is not None else None
        score = _as_score(entry.get("score"))

        if job is None or score is None or job_id in seen:
            dropped += 1
            continue

        seen.add(job_id)
        accepted.append(JobScore(
            job=job,
            driver_id=driver_id,
            score=score,
            reasons=_as_reasons(entry.get("reasons")),
        ))

    return accepted, dropped


class AssistedRanker:
    """
    Попытка ранжирования через сервис инференса.
    attempt() не бросает исключений, любой сбой превращается в failure.
    """

    def __init__(self, client: InferenceClient, timeout: float | None = None) -> None:
        """
        Args:
            client: Клиент сервиса инференса
            timeout: Общий лимит времени попытки (из конфига если None)
        """
        if timeout is None:
            from src.config import settings
            timeout = settings.inference.INFERENCE_TIMEOUT

        self._client = client
        self._timeout = timeout

    async def attempt(
        self,
        driver: DriverProfile,
        criteria: MatchingCriteria,
        jobs: Iterable[JobRecord],
    ) -> AssistedResult:
        """
        Ранжирует пул через сервис инференса.

        Returns:
            AssistedResult.success с отсортированными оценками
            или AssistedResult.failure с причиной
        """
        pool = [job for job in jobs if job.is_open]
        if not pool:
            return AssistedResult.failure("пул заявок пуст")

        payload = build_payload(driver, criteria, pool)

        try:
            raw = await asyncio.wait_for(self._client.rank(payload), self._timeout)
        except asyncio.TimeoutError:
            await log_warning(f"Сервис инференса не ответил за {self._timeout} с")
            return AssistedResult.failure("timeout")
        except (InferenceError, httpx.HTTPError) as e:
            await log_warning(f"Сервис инференса недоступен: {e}")
            return AssistedResult.failure(str(e))
        except Exception as e:
            await log_warning(f"Ошибка ранжирования через сервис инференса: {e}")
            return AssistedResult.failure(str(e))

        scores, dropped = validate_matches(raw, pool, driver.id)

        if dropped:
            await log_warning(
                f"Отброшено {dropped} некорректных записей ответа для водителя {driver.id}"
            )

        if not scores:
            return AssistedResult.failure("нет пригодных записей", dropped=dropped)

        await log_info(
            f"Ранжирование через сервис инференса для водителя {driver.id}: "
            f"принято {len(scores)}, отброшено {dropped}",
            type_msg=TypeMsg.DEBUG,
        )

        return AssistedResult.success(scores, dropped=dropped)


async def with_fallback(
    attempt: Awaitable[AssistedResult],
    fallback: Callable[[], Awaitable[list[JobScore]]],
) -> list[JobScore]:
    """
    Возвращает оценки успешной попытки, иначе результат fallback().

    Args:
        attempt: Попытка ранжирования через сервис инференса
        fallback: Детерминированное ранжирование того же пула
    """
    result = await attempt
    if result.ok:
        return list(result.scores)

    await log_warning(f"Откат на детерминированный скоринг: {result.error}")
    return await fallback()
