"""
Response playback.

Fetches the synthesized reply from the interview service and plays it. A
return from play() is the natural-completion signal; PlaybackError is the
failure signal.
"""

import logging
import time

from live_interview.api.gateway import InterviewGateway, NetworkError
from live_interview.media.player import AudioPlayer, PlaybackError

logger = logging.getLogger(__name__)


class PlaybackEngine:
    def __init__(self, gateway: InterviewGateway, player: AudioPlayer) -> None:
        self._gateway = gateway
        self._player = player

    async def play(self, audio_path: str = "/audio") -> None:
        t0 = time.perf_counter()
        try:
            audio = await self._gateway.fetch_audio(audio_path)
        except NetworkError as e:
            raise PlaybackError(f"could not fetch response audio: {e}") from e
        if not audio:
            raise PlaybackError(f"{audio_path} returned no audio")

        logger.info(f"[PLAYBACK] fetched bytes={len(audio)} in {time.perf_counter() - t0:.2f}s")
        await self._player.play(audio)
        logger.info(f"[PLAYBACK] finished dur={time.perf_counter() - t0:.2f}s")
