import numpy as np
import pytest
import trimesh

from stl_reader import SourceMesh


@pytest.fixture
def box():
    # 8 vertices, 12 outward-wound triangles, axis-aligned unit normals
    return trimesh.creation.box()


@pytest.fixture
def cube_source(box):
    return SourceMesh(
        vertices=np.array(box.vertices, dtype=np.float32),
        faces=np.array(box.faces, dtype=np.int64),
        normals=np.array(box.face_normals, dtype=np.float32),
    )


@pytest.fixture
def cube_stl(tmp_path, box):
    path = tmp_path / "cube.stl"
    box.export(str(path))
    return path
