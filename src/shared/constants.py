from enum import Enum


class AggregationKind(str, Enum):
    """Способ свёртки значений точек, попавших в одну ячейку."""

    COUNT = 'count'
    SUM = 'sum'
    MEAN = 'mean'
    MIN = 'min'
    MAX = 'max'


class ExecutionStrategy(str, Enum):
    """Путь выполнения агрегации."""

    BATCH = 'batch'
    SCALAR = 'scalar'


class EngineState(str, Enum):
    EMPTY = 'empty'
    BINNED = 'binned'
    CONTOURED = 'contoured'


class ContourKind(str, Enum):
    """Тег результата: какие виды геометрии присутствуют."""

    NONE = 'none'
    LINES = 'lines'
    POLYGONS = 'polygons'
    BOTH = 'both'


def default_aggregation_kind() -> AggregationKind:
    return AggregationKind.COUNT


# --- Значения по умолчанию для движка
# Цвет изолинии/полосы, если для порога не задан стиль (RGBA, непрозрачный белый)
DEFAULT_COLOR = (255, 255, 255, 255)
# Толщина линии по умолчанию (условные единицы рендерера)
DEFAULT_STROKE_WIDTH = 1.0
# Порог по умолчанию, если список контуров не задан
DEFAULT_THRESHOLD = 1.0
# Размер ячейки сетки по умолчанию (в единицах входных координат)
DEFAULT_CELL_SIZE = 1000.0
# Начало координат сетки по умолчанию
DEFAULT_GRID_ORIGIN = (0.0, 0.0)

# --- Пакетная агрегация
# Размер порции точек для одного воркера
BATCH_CHUNK_SIZE = 65536
# Максимальное число параллельных воркеров при пакетной агрегации
BATCH_MAX_WORKERS = 4
# Меньше этого числа точек пул потоков не поднимается
BATCH_MIN_POINTS_FOR_POOL = 2 * BATCH_CHUNK_SIZE
# Префикс имён потоков пула пакетной агрегации
BATCH_THREAD_PREFIX = 'gridcontour-bin'

# Availability flags for optional libs
PSUTIL_AVAILABLE = True

# --- Вспомогательные константы для построения контуров
# Вес для усреднения четырёх значений в ячейке (1/4) в алгоритме marching squares
MARCHING_SQUARES_CENTER_WEIGHT = 0.25
# Минимальное число вершин валидного полигона
MIN_POLYGON_VERTICES = 3
# Допуск на коллинеарность при упрощении контуров полос
COLLINEAR_EPSILON = 1e-12

# Marching Squares: именованные маски и группы случаев
# Битовая раскладка (по часовой стрелке, начиная с верхнего левого):
# b0: TL, b1: TR, b2: BR, b3: BL
# «Верх» клетки: строка сетки с меньшим индексом (row), «низ»: row + 1.
# Пустая и полная маски (все углы ниже/выше уровня соответственно)
MS_MASK_EMPTY = 0  # 0b0000: все ниже уровня
MS_MASK_FULL = 15  # 0b1111: все выше уровня

# Одиночные углы
MS_MASK_TL = 1  # 0b0001: только верхний левый
MS_MASK_TR = 2  # 0b0010: только верхний правый
MS_MASK_BR = 4  # 0b0100: только нижний правый
MS_MASK_BL = 8  # 0b1000: только нижний левый

# Две вершины: стороны клетки
MS_MASK_TOP = 3  # 0b0011: TL+TR (верх)
MS_MASK_RIGHT = 6  # 0b0110: TR+BR (право)
MS_MASK_BOTTOM = 12  # 0b1100: BL+BR (низ)
MS_MASK_LEFT = 9  # 0b1001: TL+BL (лево)

# Диагональные (седловые) случаи: неоднозначны без разрешения диагонали
MS_MASK_TL_BR = 5  # 0b0101: TL+BR
MS_MASK_TR_BL = 10  # 0b1010: TR+BL

# Три вершины: «всё кроме …»
MS_MASK_NOT_TL = 14  # 0b1110: все кроме TL
MS_MASK_NOT_TR = 13  # 0b1101: все кроме TR
MS_MASK_NOT_BR = 11  # 0b1011: все кроме BR
MS_MASK_NOT_BL = 7  # 0b0111: все кроме BL

# Комплементарные группы масок: какие рёбра клетки соединяет изолиния
# (именование указывает пары рёбер; порядок в кортеже: комплементарные случаи)
MS_CONNECT_TOP_LEFT = (MS_MASK_TL, MS_MASK_NOT_TL)  # (1, 14) верх ↔ лево
MS_CONNECT_TOP_RIGHT = (MS_MASK_TR, MS_MASK_NOT_TR)  # (2, 13) верх ↔ право
MS_CONNECT_LEFT_RIGHT = (
    MS_MASK_TOP,
    MS_MASK_BOTTOM,
)  # (3, 12) лево ↔ право (горизонталь)
MS_CONNECT_RIGHT_BOTTOM = (MS_MASK_BR, MS_MASK_NOT_BR)  # (4, 11) право ↔ низ
MS_AMBIGUOUS_CASES = (MS_MASK_TL_BR, MS_MASK_TR_BL)  # (5, 10) седловые
MS_CONNECT_TOP_BOTTOM = (MS_MASK_RIGHT, MS_MASK_LEFT)  # (6, 9)  верх ↔ низ (вертикаль)
MS_CONNECT_LEFT_BOTTOM = (MS_MASK_NOT_BL, MS_MASK_BL)  # (7, 8)  лево ↔ низ

# --- CLI
# Имя колонки координаты X во входном CSV
CSV_X_COLUMN = 'x'
# Имя колонки координаты Y во входном CSV
CSV_Y_COLUMN = 'y'
# Отступ JSON при записи результата
JSON_INDENT = 2
