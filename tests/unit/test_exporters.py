import laspy
import numpy as np

from procgeo.core.exporter import LasWriter, NpzWriter, PlyWriter, RdWriter, polygon_stream
from procgeo.core.mesh import MeshData


def _quad() -> MeshData:
    return MeshData(
        vertices=np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [1.0, 1.0, 0.0], [0.0, 1.0, 0.0]]),
        normals=np.tile([0.0, 0.0, 1.0], (4, 1)),
        colors=np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0], [1.0, 1.0, 1.0]]),
        faces=np.array([[0, 1, 2, 3]]),
    )


def _segments() -> MeshData:
    return MeshData(
        vertices=np.zeros((0, 3)),
        lines=np.array([[[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]], [[1.0, 0.0, 0.0], [1.0, 2.0, 0.0]]]),
        line_colors=np.array([[1.0, 0.0, 0.0], [1.0, 0.0, 0.0]]),
    )


def test_ply_writer_merges_parts(tmp_path) -> None:
    path = tmp_path / "mesh.ply"
    writer = PlyWriter(str(path))
    writer.write(_quad())
    writer.write(_quad())
    writer.close()

    lines = path.read_text(encoding="utf-8").splitlines()
    assert "element vertex 8" in lines
    assert "element face 2" in lines
    body = lines[lines.index("end_header") + 1:]
    assert len(body) == 10
    assert body[0].split()[-3:] == ["255", "0", "0"]
    assert body[-1] == "4 4 5 6 7"


def test_npz_single_part_keeps_arrays(tmp_path) -> None:
    path = tmp_path / "mesh.npz"
    writer = NpzWriter(str(path))
    writer.write(_quad())
    writer.close()

    with np.load(path) as data:
        assert data["vertices"].shape == (4, 3)
        np.testing.assert_array_equal(data["faces"], [[0, 1, 2, 3]])
        assert data["normals"].shape == (4, 3)


def test_npz_frames_are_stacked(tmp_path) -> None:
    path = tmp_path / "frames.npz"
    writer = NpzWriter(str(path))
    writer.write(_quad())
    writer.write(_segments())
    writer.write(_quad())
    writer.close()

    with np.load(path) as data:
        np.testing.assert_array_equal(data["frame"], [0, 0, 0, 0, 2, 2, 2, 2])
        np.testing.assert_array_equal(data["line_frame"], [1, 1])
        assert data["lines"].shape == (2, 2, 3)


def test_las_writer_round_trips_attributes(tmp_path) -> None:
    path = tmp_path / "points.las"
    writer = LasWriter(str(path))
    writer.write(_quad())
    writer.write(MeshData(vertices=np.zeros((0, 3))))
    writer.write(_quad())
    writer.close()
    assert writer.points_written == 8

    las = laspy.read(str(path))
    assert len(las.points) == 8
    np.testing.assert_allclose(np.asarray(las.x)[:4], [0.0, 1.0, 1.0, 0.0], atol=1e-4)
    assert int(las.red[0]) == 65535 and int(las.green[0]) == 0
    np.testing.assert_allclose(np.asarray(las["NormalZ"]), 1.0)
    np.testing.assert_array_equal(np.asarray(las["frame"]), [0] * 4 + [2] * 4)


def test_las_writer_skips_empty_output(tmp_path) -> None:
    path = tmp_path / "empty.las"
    writer = LasWriter(str(path))
    writer.write(MeshData(vertices=np.zeros((0, 3))))
    writer.close()
    assert not path.exists()


def test_rd_writer_static_scene(tmp_path) -> None:
    path = tmp_path / "scene.rd"
    writer = RdWriter(str(path), title="quad")
    writer.write(_quad())
    writer.close()

    text = path.read_text(encoding="utf-8").splitlines()
    assert text[0] == 'Display "quad" "Screen" "rgbdouble"'
    assert "WorldBegin" in text and "WorldEnd" in text
    assert "FrameBegin 1" not in text
    i = text.index('PolySet "PNC"')
    assert text[i + 1] == "4 1"
    assert text[i + 2].split() == ["0", "0", "0", "0", "0", "1", "1", "0", "0"]
    assert text[i + 6] == "0 1 2 3 -1"


def test_rd_writer_points_lines_and_frames(tmp_path) -> None:
    path = tmp_path / "anim.rd"
    writer = RdWriter(str(path), animated=True)
    points = MeshData(vertices=np.array([[1.0, 2.0, 3.0]]), colors=np.array([[0.5, 0.5, 0.5]]))
    writer.write(points)
    writer.write(_segments())
    writer.close()

    text = path.read_text(encoding="utf-8").splitlines()
    assert text.count("WorldBegin") == 2
    assert "FrameBegin 1" in text and "FrameBegin 2" in text
    assert "Point 1 2 3" in text
    assert "Line 1 0 0 1 2 0" in text
    # Consecutive segments with the same color share one Color record.
    assert text.count("Color 1 0 0") == 1


def test_polygon_stream_closes_each_face() -> None:
    mesh = MeshData(
        vertices=np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [1.0, 1.0, 0.0]]),
        faces=np.array([[0, 1, 2], [1, 3, 2]]),
    )
    records = polygon_stream(mesh)
    assert [op for op, _ in records] == ["move", "move", "draw", "move", "move", "draw"]
    np.testing.assert_array_equal(records[2][1], [0.0, 1.0, 0.0])
    np.testing.assert_array_equal(records[-1][1], [0.0, 1.0, 0.0])
