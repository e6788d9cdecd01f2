import logging
import os
from pathlib import Path

import tomlkit
from tomlkit.exceptions import TOMLKitError

from domain.models import ContourSettings, InvalidConfigurationError, validate_settings

logger = logging.getLogger(__name__)

PROFILES_ENV_VAR = 'GRIDCONTOUR_PROFILES_DIR'


def _user_profiles_dir() -> Path:
    """
    Determine profiles directory.

    1) If GRIDCONTOUR_PROFILES_DIR is set, use it.
    2) If <project_root>/configs/profiles exists, use it (run-from-repo setups).
    3) Otherwise fall back to ~/.config/gridcontour/profiles.
    """
    env_dir = os.getenv(PROFILES_ENV_VAR)
    if env_dir:
        return Path(env_dir)

    project_root = Path(__file__).resolve().parent.parent.parent
    local_profiles = project_root / 'configs' / 'profiles'
    if local_profiles.exists():
        return local_profiles

    return Path.home() / '.config' / 'gridcontour' / 'profiles'


def ensure_profiles_dir(base_dir: Path | None = None) -> Path:
    profiles_dir = base_dir or _user_profiles_dir()
    profiles_dir.mkdir(parents=True, exist_ok=True)
    return profiles_dir


def list_profiles(base_dir: Path | None = None) -> list[str]:
    """Список имён профилей без расширения."""
    folder = ensure_profiles_dir(base_dir)
    return sorted(p.stem for p in folder.glob('*.toml') if p.is_file())


def profile_path(name: str, base_dir: Path | None = None) -> Path:
    """Путь к файлу профиля по имени."""
    return ensure_profiles_dir(base_dir) / f'{name}.toml'


def load_profile(name_or_path: str, base_dir: Path | None = None) -> ContourSettings:
    """
    Загрузка и валидация профиля TOML -> ContourSettings.

    Поддерживает как имя профиля (без .toml) из каталога profiles,
    так и абсолютный/относительный путь до TOML файла.
    """
    p = Path(name_or_path)
    path = (
        p
        if p.suffix.lower() == '.toml' and p.exists()
        else profile_path(name_or_path, base_dir)
    )
    if not path.exists():
        msg = f'Profile not found: {path}'
        raise FileNotFoundError(msg)
    text = path.read_text(encoding='utf-8')
    try:
        data = tomlkit.parse(text).unwrap()
    except TOMLKitError as e:
        msg = f'Malformed profile {path}: {e}'
        raise InvalidConfigurationError(msg) from e

    settings = validate_settings(data)
    logger.info(
        'Profile %s loaded: cell_size=%s, %d threshold(s), aggregation=%s',
        path.name,
        settings.cell_size,
        len(settings.contours),
        settings.aggregation.value,
    )
    return settings


def save_profile(
    name: str, settings: ContourSettings, base_dir: Path | None = None
) -> Path:
    """Сохранение профиля в TOML (без атомарности и бэкапов)."""
    path = profile_path(name, base_dir)
    # TOML не умеет null: незаданные поля просто опускаем
    data = settings.model_dump(mode='json', exclude_none=True)
    # массив таблиц [[contours]] пишем последним, после простых ключей
    data['contours'] = data.pop('contours', [])
    text = tomlkit.dumps(data)
    path.write_text(text, encoding='utf-8')
    return path


def delete_profile(name: str, base_dir: Path | None = None) -> None:
    path = profile_path(name, base_dir)
    if path.exists():
        path.unlink()
