from __future__ import annotations

import moderngl
import numpy as np

from grassfield.config import FAR, FOV_DEG, NEAR
from grassfield.render.grass import grass_shader_sources, interleave_chunk
from grassfield.render.shaders import ground_shader_sources, pick_glsl_version
from grassfield.util.math import perspective
from grassfield.world.animation import AnimationFrame
from grassfield.world.chunk import ChunkRecord

_SKY_VERT = """#version 150
in vec2 in_pos;
out vec2 v_uv;
void main() {
    v_uv = in_pos * 0.5 + 0.5;
    gl_Position = vec4(in_pos, 0.0, 1.0);
}
"""

_SKY_FRAG = """#version 150
in vec2 v_uv;
uniform vec2 u_sun_ndc;
out vec4 f_color;

void main() {
    // Gradient: horizon -> zenith
    vec3 horizon = vec3(0.78, 0.86, 0.96);
    vec3 zenith  = vec3(0.40, 0.60, 0.85);
    float t = smoothstep(0.0, 1.0, v_uv.y);
    vec3 col = mix(horizon, zenith, t);

    vec2 ndc = vec2(v_uv.x * 2.0 - 1.0, v_uv.y * 2.0 - 1.0);
    float d = length(ndc - u_sun_ndc);
    float disc = 1.0 - smoothstep(0.05, 0.08, d);
    float glow = 1.0 - smoothstep(0.10, 0.35, d);
    col += vec3(1.0, 0.95, 0.80) * (disc * 0.75 + glow * 0.12);

    f_color = vec4(col, 1.0);
}
"""

_HUD_VERT = """#version 150
in vec2 in_pos;
in vec2 in_uv;
out vec2 v_uv;
void main() {
    v_uv = in_uv;
    gl_Position = vec4(in_pos, 0.0, 1.0);
}
"""

_HUD_FRAG = """#version 150
uniform sampler2D u_tex;
in vec2 v_uv;
out vec4 f_color;
void main() {
    f_color = texture(u_tex, v_uv);
}
"""


class GpuChunk:
    """GPU buffers for one chunk record."""

    def __init__(self, record: ChunkRecord, vbo: moderngl.Buffer, ibo: moderngl.Buffer, vao: moderngl.VertexArray) -> None:
        self.record = record
        self.vbo = vbo
        self.ibo = ibo
        self.vao = vao

    def release(self) -> None:
        self.vao.release()
        self.vbo.release()
        self.ibo.release()


class Renderer:
    def __init__(self, ctx: moderngl.Context, width: int, height: int) -> None:
        self.ctx = ctx
        self.width = width
        self.height = height

        vert, frag = ground_shader_sources(ctx.version_code)
        self.prog = self.ctx.program(vertex_shader=vert, fragment_shader=frag)

        gvert, gfrag = grass_shader_sources(pick_glsl_version(ctx.version_code))
        self.grass_prog = self.ctx.program(vertex_shader=gvert, fragment_shader=gfrag)

        self._proj = perspective(FOV_DEG, width / height, NEAR, FAR).astype(np.float32)
        self.prog["u_proj"].write(self._proj.tobytes())
        self.grass_prog["u_proj"].write(self._proj.tobytes())

        self.ctx.enable(moderngl.DEPTH_TEST)
        # Blades are single-sided ribbons closed with a back-facing apex
        self.ctx.disable(moderngl.CULL_FACE)

        self._ground_vao: moderngl.VertexArray | None = None
        self._ground_bufs: list[moderngl.Buffer] = []
        self._chunks: list[GpuChunk] = []

        # Sky quad
        self._sky_prog = self.ctx.program(vertex_shader=_SKY_VERT, fragment_shader=_SKY_FRAG)
        sky = np.array([
            -1.0, -1.0,
             1.0, -1.0,
            -1.0,  1.0,
             1.0,  1.0,
        ], dtype=np.float32)
        self._sky_vbo = self.ctx.buffer(sky.tobytes())
        self._sky_vao = self.ctx.vertex_array(self._sky_prog, [(self._sky_vbo, "2f", "in_pos")])

        # HUD quad (top-left)
        self._hud_prog = self.ctx.program(vertex_shader=_HUD_VERT, fragment_shader=_HUD_FRAG)
        quad = np.array([
            -0.98,  0.98, 0.0, 1.0,
            -0.30,  0.98, 1.0, 1.0,
            -0.98,  0.66, 0.0, 0.0,

            -0.30,  0.98, 1.0, 1.0,
            -0.30,  0.66, 1.0, 0.0,
            -0.98,  0.66, 0.0, 0.0,
        ], dtype=np.float32)
        self._hud_vbo = self.ctx.buffer(quad.tobytes())
        self._hud_vao = self.ctx.vertex_array(self._hud_prog, [(self._hud_vbo, "2f 2f", "in_pos", "in_uv")])
        self._hud_tex: moderngl.Texture | None = None
        self._hud_tex_size = (0, 0)

    @property
    def proj(self) -> np.ndarray:
        return self._proj

    def release(self) -> None:
        self.clear_chunks()
        self._release_ground()
        for obj in [self._sky_vao, self._sky_vbo, self._sky_prog, self._hud_vao, self._hud_vbo, self._hud_prog, self.grass_prog, self.prog]:
            obj.release()
        if self._hud_tex is not None:
            self._hud_tex.release()

    def resize(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self.ctx.viewport = (0, 0, width, height)
        self._proj = perspective(FOV_DEG, width / height, NEAR, FAR).astype(np.float32)
        self.prog["u_proj"].write(self._proj.tobytes())
        self.grass_prog["u_proj"].write(self._proj.tobytes())

    def begin_frame(self) -> None:
        self.ctx.clear(0.70, 0.80, 0.92, 1.0)

    def draw_sky(self, sun_ndc: tuple[float, float]) -> None:
        self.ctx.disable(moderngl.DEPTH_TEST)
        self._sky_prog["u_sun_ndc"].value = (float(sun_ndc[0]), float(sun_ndc[1]))
        self._sky_vao.render(mode=moderngl.TRIANGLE_STRIP)
        self.ctx.enable(moderngl.DEPTH_TEST)

    def set_common_uniforms(
        self,
        view: np.ndarray,
        cam_pos: np.ndarray,
        light_dir: np.ndarray,
        fog_start: float,
        fog_end: float,
    ) -> None:
        view_bytes = view.astype(np.float32).tobytes()
        cam = (float(cam_pos[0]), float(cam_pos[1]), float(cam_pos[2]))
        self.prog["u_view"].write(view_bytes)
        self.prog["u_cam_pos"].value = cam
        self.prog["u_light_dir"].value = (float(light_dir[0]), float(light_dir[1]), float(light_dir[2]))
        self.prog["u_fog_start"].value = float(fog_start)
        self.prog["u_fog_end"].value = float(fog_end)

        self.grass_prog["u_view"].write(view_bytes)
        self.grass_prog["u_cam_pos"].value = cam
        self.grass_prog["u_fog_start"].value = float(fog_start)
        self.grass_prog["u_fog_end"].value = float(fog_end)

    def set_animation(self, frame: AnimationFrame) -> None:
        """Feed wind/interaction uniforms; disabled parts are zeroed."""
        self.grass_prog["u_wind_params"].value = frame.wind if frame.wind is not None else (0.0, 0.0, 0.0, 0.0)
        self.grass_prog["u_wind_strength"].value = frame.wind_strength if frame.wind_strength is not None else 0.0
        self.grass_prog["u_interaction_pos"].value = frame.interaction if frame.interaction is not None else (0.0, 0.0, 0.0, 0.0)
        self.grass_prog["u_interaction_radius"].value = frame.interaction_radius if frame.interaction_radius is not None else 0.0

    # --- Ground ---
    def _release_ground(self) -> None:
        if self._ground_vao is not None:
            self._ground_vao.release()
            self._ground_vao = None
        for b in self._ground_bufs:
            b.release()
        self._ground_bufs = []

    def upload_ground(self, vbo: np.ndarray, ibo: np.ndarray) -> None:
        self._release_ground()
        vb = self.ctx.buffer(vbo.astype(np.float32).tobytes())
        ib = self.ctx.buffer(ibo.astype(np.uint32).tobytes())
        self._ground_bufs = [vb, ib]
        self._ground_vao = self.ctx.vertex_array(self.prog, [(vb, "3f 3f 3f", "in_pos", "in_norm", "in_color")], ib)

    def draw_ground(self) -> None:
        if self._ground_vao is not None:
            self._ground_vao.render()

    # --- Grass chunks ---
    def clear_chunks(self) -> None:
        for c in self._chunks:
            c.release()
        self._chunks = []

    def upload_chunks(self, records) -> None:
        """Replace every chunk buffer with the given records."""
        self.clear_chunks()
        for rec in records:
            vb = self.ctx.buffer(interleave_chunk(rec).tobytes())
            ib = self.ctx.buffer(rec.indices.astype(np.uint32).tobytes())
            vao = self.ctx.vertex_array(self.grass_prog, [(vb, "3f 4f 2f", "in_pos", "in_color", "in_uv")], ib)
            self._chunks.append(GpuChunk(rec, vb, ib, vao))

    def draw_chunks(self) -> int:
        """Draw chunks flagged visible by the last classification tick. Returns draw count."""
        drawn = 0
        for c in self._chunks:
            if not c.record.visible:
                continue
            c.vao.render()
            drawn += 1
        return drawn

    # --- HUD ---
    def hud_update_rgba(self, rgba_bytes: bytes, w: int, h: int) -> None:
        if self._hud_tex is None or self._hud_tex_size != (w, h):
            if self._hud_tex is not None:
                self._hud_tex.release()
            self._hud_tex = self.ctx.texture((w, h), 4, data=rgba_bytes)
            self._hud_tex.filter = (moderngl.NEAREST, moderngl.NEAREST)
            self._hud_tex.repeat_x = False
            self._hud_tex.repeat_y = False
            self._hud_tex_size = (w, h)
        else:
            self._hud_tex.write(rgba_bytes)

    def draw_hud(self) -> None:
        if self._hud_tex is None:
            return
        self.ctx.enable(moderngl.BLEND)
        self.ctx.blend_func = (moderngl.SRC_ALPHA, moderngl.ONE_MINUS_SRC_ALPHA)
        self.ctx.disable(moderngl.DEPTH_TEST)
        self._hud_tex.use(location=0)
        self._hud_prog["u_tex"].value = 0
        self._hud_vao.render(mode=moderngl.TRIANGLES)
        self.ctx.enable(moderngl.DEPTH_TEST)
        self.ctx.disable(moderngl.BLEND)
