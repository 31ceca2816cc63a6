#!/usr/bin/env python3
"""
Spinning STL viewer (via Open3D)
"""
import sys

import numpy as np
from scipy.spatial.transform import Rotation

from mesh_adapter import RenderMesh, convert, misaligned_normals
from stl_reader import StlViewerError, read_stl

try:
    import open3d as o3d
except ImportError:
    o3d = None

DEFAULT_STL_PATH = "~/example.stl"
WINDOW_WIDTH = 1280
WINDOW_HEIGHT = 720
MESH_COLOR = (1.0, 1.0, 1.0)

# STL has no fixed up axis; turn the model's +Z into the viewer's up
UP_AXIS_CORRECTION_RAD = -1.5707
SPIN_RATE_RAD_PER_FRAME = 0.0005

X_AXIS = np.array([1.0, 0.0, 0.0])
Z_AXIS = np.array([0.0, 0.0, 1.0])

USAGE = """
Please specify an STL file
Since none was specified, bad-stl will default to ~/example.stl
but this is unlikely to exist, and the program will most likely fail.
---------------------
usage: bad-stl <file>

"""


class ViewerError(StlViewerError):
    pass


def axis_rotation(axis, angle: float) -> Rotation:
    return Rotation.from_rotvec(np.asarray(axis, dtype=float) * angle)


####################################
# Scene node: mesh + orientation
####################################
class SceneNode:
    """
    The single object on screen. The mesh buffers are never modified; the
    node only carries the orientation they are drawn with, applied about the
    mesh's vertex centroid so the camera's initial fit keeps it in view.
    """
    def __init__(self, render_mesh: RenderMesh):
        self.render_mesh = render_mesh
        self.orientation = Rotation.identity()
        if len(render_mesh.positions):
            self.center = render_mesh.positions.mean(axis=0).astype(np.float64)
        else:
            self.center = np.zeros(3)

    def prepend_to_local_rotation(self, rotation: Rotation):
        # rotation acts first, in the mesh's own frame
        self.orientation = self.orientation * rotation

    def oriented_positions(self) -> np.ndarray:
        return self.orientation.apply(self.render_mesh.positions - self.center) + self.center

    def oriented_normals(self) -> np.ndarray:
        return self.orientation.apply(self.render_mesh.normals)

    def apply_to(self, geometry):
        geometry.vertices = o3d.utility.Vector3dVector(self.oriented_positions())
        # Compute normals for proper shading
        geometry.compute_vertex_normals()
        # compute_vertex_normals also rewrites the triangle normals
        geometry.triangle_normals = o3d.utility.Vector3dVector(self.oriented_normals())


def build_geometry(node: SceneNode):
    geometry = o3d.geometry.TriangleMesh()
    geometry.triangles = o3d.utility.Vector3iVector(
        node.render_mesh.faces.astype(np.int32)
    )
    node.apply_to(geometry)
    geometry.paint_uniform_color(list(MESH_COLOR))
    return geometry


####################################
# Render loop
####################################
def run(title: str, render_mesh: RenderMesh) -> None:
    if o3d is None:
        raise ViewerError("Open3D is not installed. Cannot view STL.")

    node = SceneNode(render_mesh)
    node.prepend_to_local_rotation(axis_rotation(X_AXIS, UP_AXIS_CORRECTION_RAD))
    geometry = build_geometry(node)

    vis = o3d.visualization.Visualizer()
    if not vis.create_window(window_name=title, width=WINDOW_WIDTH, height=WINDOW_HEIGHT):
        raise ViewerError(f"Could not create a window for {title} (is a display available?)")

    try:
        opt = vis.get_render_option()
        opt.mesh_show_back_face = False  # back-face culling, assumes a closed solid
        opt.light_on = True  # Open3D's light sits at the camera
        opt.mesh_shade_option = o3d.visualization.MeshShadeOption.Default  # flat, per-face normals
        vis.add_geometry(geometry)

        slow_spin = axis_rotation(Z_AXIS, SPIN_RATE_RAD_PER_FRAME)
        while vis.poll_events():
            node.prepend_to_local_rotation(slow_spin)
            node.apply_to(geometry)
            vis.update_geometry(geometry)
            vis.update_renderer()
    finally:
        vis.destroy_window()


####################################
# CLI
####################################
def select_path(args) -> str:
    """First argument is the STL path; extra arguments are ignored."""
    if not args:
        print(USAGE)
        return DEFAULT_STL_PATH
    return args[0]


def main(argv=None):
    args = sys.argv[1:] if argv is None else argv
    stl_file = select_path(args)

    try:
        source = read_stl(stl_file)
        print(f"Loaded {stl_file}: {len(source.vertices)} vertices, {len(source.faces)} faces")

        render_mesh = convert(source)

        suspect = misaligned_normals(render_mesh)
        if len(suspect):
            print(f"Warning: {len(suspect)} of {len(render_mesh.faces)} stored normals "
                  f"disagree with their triangle's winding (first: face {suspect[0]})")

        run(stl_file, render_mesh)
    except StlViewerError as e:
        sys.exit(f"Error: {e}")


if __name__ == "__main__":
    main()
