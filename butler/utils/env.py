import os
import re
from typing import Iterable, Optional

from dotenv import dotenv_values

ENV_PAIR_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*=")


def collect_environment(
    env_files: Optional[Iterable[str]] = None,
    pairs: Optional[Iterable[str]] = None,
    base: Optional[dict[str, str]] = None,
) -> dict[str, str]:
    """Окружение процесса + .env файлы + пары KEY=VALUE из командной строки."""
    env = dict(os.environ if base is None else base)
    for env_file in env_files or []:
        if not os.path.isfile(env_file):
            raise FileNotFoundError(f"env file not found: {env_file}")
        env.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
    for pair in pairs or []:
        if not ENV_PAIR_RE.match(pair):
            raise ValueError(f"'{pair}' is not formatted as KEY=VALUE")
        key, _, value = pair.partition("=")
        env[key] = value
    return env
