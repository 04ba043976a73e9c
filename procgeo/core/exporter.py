from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Dict, List, TextIO, Tuple
import numpy as np
import pathlib

import laspy  # type: ignore
from .mesh import MeshData, merge_meshes
from .utils import get_logger

_log = get_logger()

@dataclass
class LasWriter:
    """Streaming LAS/LAZ writer for mesh vertices using laspy (v2+).

    Every ``write`` call appends the mesh vertices as points. Colors are
    stored in the RGB fields, normals and the frame counter as ExtraBytes.
    The header is created lazily from the first mesh.
    """
    path: str
    point_format: int = 7
    compress: bool = False
    scale: tuple[float, float, float] = (1e-4, 1e-4, 1e-4)
    offset: Optional[tuple[float, float, float]] = None

    def __post_init__(self) -> None:
        self._fh: Optional[laspy.LasWriter] = None  # type: ignore
        self._header: Optional[laspy.LasHeader] = None  # type: ignore
        self._frame = 0
        self.points_written = 0

    # -- public API --
    def write(self, mesh: MeshData) -> None:
        if mesh.num_vertices == 0:
            self._frame += 1
            return
        if self._fh is None:
            self._init_header(mesh)
        assert self._fh is not None and self._header is not None
        self._fh.write_points(self._point_record(mesh, self._header))
        self.points_written += mesh.num_vertices
        self._frame += 1

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    # -- internals --
    def _init_header(self, mesh: MeshData) -> None:
        pf = laspy.PointFormat(self.point_format)
        hdr = laspy.LasHeader(point_format=pf, version="1.4")
        hdr.scales = self.scale
        if self.offset is None:
            mn = np.min(mesh.vertices, axis=0)
            hdr.offsets = (float(mn[0]), float(mn[1]), float(mn[2]))
        else:
            hdr.offsets = self.offset
        for name in ("NormalX", "NormalY", "NormalZ"):
            hdr.add_extra_dim(laspy.ExtraBytesParams(name=name, type="float32"))
        hdr.add_extra_dim(laspy.ExtraBytesParams(name="frame", type="uint32"))

        path = pathlib.Path(self.path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = laspy.open(path, mode="w", header=hdr, do_compress=self.compress)
        self._header = hdr
        _log.info("Opened %s (PF=%d, compress=%s)", path.name, self.point_format, self.compress)

    def _point_record(self, mesh: MeshData, header: "laspy.LasHeader") -> "laspy.ScaleAwarePointRecord":
        n = mesh.num_vertices
        pts = laspy.ScaleAwarePointRecord.zeros(n, header=header)
        pts.x = mesh.vertices[:, 0]
        pts.y = mesh.vertices[:, 1]
        pts.z = mesh.vertices[:, 2]

        if mesh.colors is not None and all(nm in pts.point_format.dimension_names for nm in ("red", "green", "blue")):
            rgb = (np.clip(mesh.colors, 0.0, 1.0) * 65535.0 + 0.5).astype(np.uint16)
            pts.red = rgb[:, 0]
            pts.green = rgb[:, 1]
            pts.blue = rgb[:, 2]

        normals = mesh.normals if mesh.normals is not None else np.zeros((n, 3))
        nrm = normals.astype(np.float32, copy=False)
        pts["NormalX"] = nrm[:, 0]
        pts["NormalY"] = nrm[:, 1]
        pts["NormalZ"] = nrm[:, 2]
        pts["frame"] = np.full(n, self._frame, dtype=np.uint32)
        return pts


def _to_uchar(colors: np.ndarray) -> np.ndarray:
    return (np.clip(colors, 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)


class PlyWriter:
    """ASCII PLY with positions, normals, 8-bit colors and face lists.

    Meshes written before ``close`` are merged into one vertex/face table.
    """
    def __init__(self, path: str) -> None:
        self.path = path
        self._parts: List[MeshData] = []

    def write(self, mesh: MeshData) -> None:
        self._parts.append(mesh)

    def close(self) -> None:
        if not self._parts:
            return
        mesh = merge_meshes(self._parts)
        path = pathlib.Path(self.path)
        path.parent.mkdir(parents=True, exist_ok=True)
        n = mesh.num_vertices
        normals = mesh.normals if mesh.normals is not None else np.zeros((n, 3))
        colors = _to_uchar(mesh.colors if mesh.colors is not None else np.ones((n, 3)))
        with open(path, "w", encoding="utf-8") as f:
            f.write("ply\n")
            f.write("format ascii 1.0\n")
            f.write(f"element vertex {n}\n")
            f.write("property float x\nproperty float y\nproperty float z\n")
            f.write("property float nx\nproperty float ny\nproperty float nz\n")
            f.write("property uchar red\nproperty uchar green\nproperty uchar blue\n")
            f.write(f"element face {mesh.num_faces}\n")
            f.write("property list uchar int vertex_indices\n")
            f.write("end_header\n")
            for (x, y, z), (nx, ny, nz), (r, g, b) in zip(mesh.vertices, normals, colors):
                f.write(f"{x:.6f} {y:.6f} {z:.6f} {nx:.6f} {ny:.6f} {nz:.6f} {int(r)} {int(g)} {int(b)}\n")
            for face in mesh.faces:
                f.write(f"{len(face)} " + " ".join(str(int(i)) for i in face) + "\n")
        self._parts.clear()


class NpzWriter:
    """Compressed numpy archive; successive writes are stacked with a ``frame`` index."""
    def __init__(self, path: str) -> None:
        self.path = path
        self._parts: List[MeshData] = []

    def write(self, mesh: MeshData) -> None:
        self._parts.append(mesh)

    def close(self) -> None:
        if not self._parts:
            return
        path = pathlib.Path(self.path)
        path.parent.mkdir(parents=True, exist_ok=True)
        out: Dict[str, np.ndarray] = {}
        if len(self._parts) == 1:
            mesh = self._parts[0]
            out["vertices"] = mesh.vertices
            out["faces"] = mesh.faces
            out["lines"] = mesh.lines
            if mesh.normals is not None:
                out["normals"] = mesh.normals
            if mesh.colors is not None:
                out["colors"] = mesh.colors
            if mesh.line_colors is not None:
                out["line_colors"] = mesh.line_colors
        else:
            out["vertices"] = np.vstack([m.vertices for m in self._parts])
            out["colors"] = np.vstack([
                m.colors if m.colors is not None else np.ones((m.num_vertices, 3)) for m in self._parts
            ])
            out["frame"] = np.concatenate([
                np.full(m.num_vertices, i, dtype=np.uint32) for i, m in enumerate(self._parts)
            ])
            out["lines"] = np.concatenate([m.lines for m in self._parts])
            out["line_frame"] = np.concatenate([
                np.full(len(m.lines), i, dtype=np.uint32) for i, m in enumerate(self._parts)
            ])
        np.savez_compressed(path, **out)
        self._parts.clear()


@dataclass
class RdWriter:
    """Line-oriented scene description stream.

    Writes a ``Display``/``Format`` header, then ``WorldBegin`` ... ``WorldEnd``
    around each mesh. With ``animated=True`` every ``write`` becomes one
    ``FrameBegin n`` ... ``FrameEnd`` block.
    """
    path: str
    title: str = "procgeo"
    width: int = 800
    height: int = 600
    camera_eye: Tuple[float, float, float] = (0.0, -20.0, 10.0)
    camera_at: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    camera_up: Tuple[float, float, float] = (0.0, 0.0, 1.0)
    animated: bool = False

    def __post_init__(self) -> None:
        self._fh: Optional[TextIO] = None
        self._frame = 0

    def write(self, mesh: MeshData) -> None:
        if self._fh is None:
            self._open()
        fh = self._fh
        assert fh is not None
        self._frame += 1
        if self.animated:
            fh.write(f"FrameBegin {self._frame}\n")
        fh.write("WorldBegin\n")
        self._write_polyset(fh, mesh)
        self._write_points(fh, mesh)
        self._write_lines(fh, mesh)
        fh.write("WorldEnd\n")
        if self.animated:
            fh.write("FrameEnd\n")
        fh.write("\n")

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def _open(self) -> None:
        path = pathlib.Path(self.path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = open(path, "w", encoding="utf-8")
        fh = self._fh
        fh.write(f'Display "{self.title}" "Screen" "rgbdouble"\n')
        fh.write(f"Format {self.width} {self.height}\n\n")
        fh.write("CameraEye {} {} {}\n".format(*self.camera_eye))
        fh.write("CameraAt {} {} {}\n".format(*self.camera_at))
        fh.write("CameraUp {} {} {}\n\n".format(*self.camera_up))
        _log.info("Opened %s", path.name)

    @staticmethod
    def _write_polyset(fh: TextIO, mesh: MeshData) -> None:
        if mesh.num_faces == 0:
            return
        has_n = mesh.normals is not None
        has_c = mesh.colors is not None
        kind = "P" + ("N" if has_n else "") + ("C" if has_c else "")
        fh.write(f'PolySet "{kind}"\n')
        fh.write(f"{mesh.num_vertices} {mesh.num_faces}\n")
        for i, v in enumerate(mesh.vertices):
            fields = list(v)
            if has_n:
                fields.extend(mesh.normals[i])  # type: ignore[index]
            if has_c:
                fields.extend(mesh.colors[i])  # type: ignore[index]
            fh.write(" ".join(f"{float(x):g}" for x in fields) + "\n")
        for face in mesh.faces:
            fh.write(" ".join(str(int(i)) for i in face) + " -1\n")

    @staticmethod
    def _write_points(fh: TextIO, mesh: MeshData) -> None:
        if mesh.num_faces or mesh.num_vertices == 0:
            return
        colors = mesh.colors if mesh.colors is not None else np.ones((mesh.num_vertices, 3))
        for (x, y, z), (r, g, b) in zip(mesh.vertices, colors):
            fh.write(f"Color {r:g} {g:g} {b:g}\n")
            fh.write(f"Point {x:g} {y:g} {z:g}\n")

    @staticmethod
    def _write_lines(fh: TextIO, mesh: MeshData) -> None:
        if not len(mesh.lines):
            return
        colors = mesh.line_colors if mesh.line_colors is not None else np.ones((len(mesh.lines), 3))
        last: Optional[Tuple[float, ...]] = None
        for (a, b), color in zip(mesh.lines, colors):
            key = tuple(float(c) for c in color)
            if key != last:
                fh.write("Color {:g} {:g} {:g}\n".format(*key))
                last = key
            fh.write("Line {:g} {:g} {:g} {:g} {:g} {:g}\n".format(*a, *b))


def polygon_stream(mesh: MeshData) -> List[Tuple[str, np.ndarray]]:
    """Flatten faces into (``"move"``/``"draw"``, point) records, one closing draw per face."""
    records: List[Tuple[str, np.ndarray]] = []
    for face in mesh.faces:
        pts = mesh.vertices[face]
        for p in pts[:-1]:
            records.append(("move", p))
        records.append(("draw", pts[-1]))
    return records
