from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Tuple
import numpy as np

from .utils import ensure_unit_vectors

NORMAL_EPS = 1e-4
AREA_EPS = 1e-12


@dataclass(frozen=True)
class PointAttr:
    """A single emitted vertex: homogeneous position, normal and optional color."""
    position: Tuple[float, float, float, float]
    normal: Tuple[float, float, float]
    color: Optional[Tuple[float, float, float]] = None


@dataclass
class SurfaceGrid:
    """Dense (divisions+1) x (divisions+1) parameter grid of points and normals.

    ``positions[ui, vi]`` holds the evaluated point; ``normals`` and ``counts``
    are filled by :func:`accumulate_normals` once every position is known.
    """
    positions: np.ndarray                       # (n+1, n+1, 3)
    normals: np.ndarray = field(default=None)   # type: ignore[assignment]
    counts: np.ndarray = field(default=None)    # type: ignore[assignment]

    def __post_init__(self) -> None:
        self.positions = np.asarray(self.positions, dtype=np.float64)
        if self.positions.ndim != 3 or self.positions.shape[2] != 3:
            raise ValueError("positions must have shape (n+1, n+1, 3).")
        if self.positions.shape[0] != self.positions.shape[1]:
            raise ValueError("SurfaceGrid must be square.")
        if self.normals is None:
            self.normals = np.zeros_like(self.positions)
        if self.counts is None:
            self.counts = np.zeros(self.positions.shape[:2], dtype=np.int64)

    @property
    def divisions(self) -> int:
        return self.positions.shape[0] - 1

    def point(self, ui: int, vi: int, color: Optional[Tuple[float, float, float]] = None) -> PointAttr:
        x, y, z = (float(c) for c in self.positions[ui, vi])
        nx, ny, nz = (float(c) for c in self.normals[ui, vi])
        return PointAttr(position=(x, y, z, 1.0), normal=(nx, ny, nz), color=color)

    def to_mesh(self, color: Tuple[float, float, float] = (1.0, 1.0, 1.0)) -> "MeshData":
        n = self.divisions
        vertices = self.positions.reshape(-1, 3)
        normals = self.normals.reshape(-1, 3)
        colors = np.tile(np.asarray(color, dtype=np.float32), (len(vertices), 1))
        return MeshData(vertices=vertices, normals=normals, colors=colors, faces=grid_faces(n))


def face_normal(corners: np.ndarray) -> np.ndarray:
    """Flat normal of a grid quad from its (ui+1) and (vi+1) edges."""
    v1 = corners[1] - corners[0]
    v2 = corners[3] - corners[0]
    n = np.cross(v1, v2)
    length = float(np.linalg.norm(n))
    if length > NORMAL_EPS:
        n = n / length
    return n


def accumulate_normals(grid: SurfaceGrid) -> SurfaceGrid:
    """Average the face normals of the four quads around each vertex."""
    p = grid.positions
    v1 = p[1:, :-1] - p[:-1, :-1]
    v2 = p[:-1, 1:] - p[:-1, :-1]
    raw = np.cross(v1, v2)
    lengths = np.linalg.norm(raw, axis=-1)
    # Collapsed quads (pole rows) contribute neither a normal nor a count.
    ok = lengths > NORMAL_EPS
    faces = np.divide(raw, lengths[..., None], out=np.zeros_like(raw), where=ok[..., None])

    acc = np.zeros_like(p)
    counts = np.zeros(p.shape[:2], dtype=np.int64)
    for du, dv in ((0, 0), (1, 0), (1, 1), (0, 1)):
        rows = slice(du, du + faces.shape[0])
        cols = slice(dv, dv + faces.shape[1])
        acc[rows, cols] += faces
        counts[rows, cols] += ok

    safe = np.maximum(counts, 1)[..., None]
    averaged = np.where(counts[..., None] > 0, acc / safe, 0.0)
    grid.normals = ensure_unit_vectors(averaged, NORMAL_EPS)
    grid.counts = counts
    return grid


def grid_faces(divisions: int) -> np.ndarray:
    """Quad index list over a flattened (divisions+1)^2 grid, row-major in ui then vi."""
    stride = divisions + 1
    faces = []
    for ui in range(divisions):
        for vi in range(divisions):
            i00 = ui * stride + vi
            i10 = (ui + 1) * stride + vi
            faces.append([i00, i10, i10 + 1, i00 + 1])
    return np.asarray(faces, dtype=np.int64).reshape(-1, 4)


def triangulate_quads(quads: np.ndarray) -> np.ndarray:
    """Split each quad along its first-to-third corner diagonal."""
    quads = np.asarray(quads, dtype=np.int64)
    first = quads[:, [0, 1, 2]]
    second = quads[:, [0, 2, 3]]
    return np.stack([first, second], axis=1).reshape(-1, 3)


def quads(grid: SurfaceGrid) -> Iterator[Tuple[int, int, np.ndarray, np.ndarray, np.ndarray]]:
    """Yield every grid quad with its corners in bottom-left, bottom-right, top-right, top-left order."""
    n = grid.divisions
    for ui in range(n):
        for vi in range(n):
            idx = ([ui, ui + 1, ui + 1, ui], [vi, vi, vi + 1, vi + 1])
            corners = grid.positions[idx]
            yield ui, vi, corners, grid.normals[idx], face_normal(corners)


@dataclass
class MeshData:
    """Geometry handed to an output sink: vertices, attributes, faces and line segments."""
    vertices: np.ndarray                                   # (N, 3)
    normals: Optional[np.ndarray] = None                   # (N, 3)
    colors: Optional[np.ndarray] = None                    # (N, 3) in [0, 1]
    faces: np.ndarray = field(default_factory=lambda: np.zeros((0, 3), dtype=np.int64))
    lines: np.ndarray = field(default_factory=lambda: np.zeros((0, 2, 3), dtype=np.float64))
    line_colors: Optional[np.ndarray] = None               # (K, 3)

    def __post_init__(self) -> None:
        self.vertices = np.asarray(self.vertices, dtype=np.float64).reshape(-1, 3)
        n = len(self.vertices)
        for name in ("normals", "colors"):
            arr = getattr(self, name)
            if arr is None:
                continue
            arr = np.asarray(arr, dtype=np.float64)
            if arr.shape != (n, 3):
                raise ValueError(f"Attribute '{name}' shape {arr.shape} != ({n}, 3)")
            setattr(self, name, arr)
        self.faces = np.asarray(self.faces, dtype=np.int64)
        if self.faces.size and (self.faces.min() < 0 or self.faces.max() >= n):
            raise ValueError("Face index out of range.")
        self.lines = np.asarray(self.lines, dtype=np.float64).reshape(-1, 2, 3)
        if self.line_colors is not None:
            self.line_colors = np.asarray(self.line_colors, dtype=np.float64).reshape(-1, 3)
            if len(self.line_colors) != len(self.lines):
                raise ValueError("line_colors length must match lines.")

    @property
    def num_vertices(self) -> int:
        return len(self.vertices)

    @property
    def num_faces(self) -> int:
        return len(self.faces)


def merge_meshes(parts: Iterable[MeshData]) -> MeshData:
    vertices: List[np.ndarray] = []
    normals: List[np.ndarray] = []
    colors: List[np.ndarray] = []
    faces: List[np.ndarray] = []
    lines: List[np.ndarray] = []
    line_colors: List[np.ndarray] = []
    offset = 0
    width = 3
    for part in parts:
        n = part.num_vertices
        vertices.append(part.vertices)
        normals.append(part.normals if part.normals is not None else np.zeros((n, 3)))
        colors.append(part.colors if part.colors is not None else np.ones((n, 3)))
        if part.num_faces:
            width = max(width, part.faces.shape[1])
            faces.append(part.faces + offset)
        if len(part.lines):
            lines.append(part.lines)
            lc = part.line_colors if part.line_colors is not None else np.ones((len(part.lines), 3))
            line_colors.append(lc)
        offset += n
    if not vertices:
        return MeshData(vertices=np.zeros((0, 3)))
    if any(f.shape[1] != width for f in faces):
        # Mixed triangles and quads: fall back to triangles everywhere.
        faces = [triangulate_quads(f) if f.shape[1] == 4 else f for f in faces]
        width = 3
    return MeshData(
        vertices=np.vstack(vertices),
        normals=np.vstack(normals),
        colors=np.vstack(colors),
        faces=np.vstack(faces) if faces else np.zeros((0, width), dtype=np.int64),
        lines=np.concatenate(lines) if lines else np.zeros((0, 2, 3)),
        line_colors=np.vstack(line_colors) if line_colors else None,
    )


def vertex_normals(vertices: np.ndarray, faces: np.ndarray) -> np.ndarray:
    """Per-vertex average of the unit normals of every triangle using it.

    Degenerate triangles add nothing; vertices no triangle references keep a
    zero normal.
    """
    vertices = np.asarray(vertices, dtype=np.float64)
    faces = np.asarray(faces, dtype=np.int64)
    tris = vertices[faces]
    raw = np.cross(tris[:, 1] - tris[:, 0], tris[:, 2] - tris[:, 0])
    lengths = np.linalg.norm(raw, axis=1, keepdims=True)
    # Each triangle contributes a unit normal whatever its area.
    face_n = np.divide(raw, lengths, out=np.zeros_like(raw), where=lengths > AREA_EPS)
    acc = np.zeros_like(vertices)
    for corner in range(3):
        np.add.at(acc, faces[:, corner], face_n)
    return ensure_unit_vectors(acc, NORMAL_EPS)
