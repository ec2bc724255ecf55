from __future__ import annotations

import numpy as np

from grassfield.world.chunk import ChunkRecord


def grass_shader_sources(glsl_version: int) -> tuple[str, str]:
    """Blade shader: per-vertex color, bending weighted by vertex alpha.

    Vertex layout: in_pos(3), in_color(4), in_uv(2). Alpha is normalized blade
    height, so roots stay put and tips move the most.
    """
    prefix = f"#version {glsl_version}\n"

    vert = prefix + """
in vec3 in_pos;
in vec4 in_color;
in vec2 in_uv;

uniform mat4 u_proj;
uniform mat4 u_view;

// (dir_x, turbulence, dir_z, time); strength 0 disables wind
uniform vec4 u_wind_params;
uniform float u_wind_strength;
// (x, y, z, strength); radius 0 disables interaction
uniform vec4 u_interaction_pos;
uniform float u_interaction_radius;

out vec3 v_world_pos;
out vec4 v_color;
out vec2 v_uv;

void main() {
    vec3 p = in_pos;
    float bend = in_color.a * in_color.a;

    vec2 dir = u_wind_params.xz;
    float t = u_wind_params.w;
    float phase = dot(p.xz, vec2(0.37, 0.21));
    float sway = sin(t * 2.0 + phase) * 0.7 + sin(t * 3.7 + phase * 1.9) * 0.3 * u_wind_params.y;
    p.xz += dir * (0.5 + 0.5 * sway) * u_wind_strength * bend;

    if (u_interaction_radius > 0.0) {
        vec2 away = p.xz - u_interaction_pos.xz;
        float d = length(away);
        float falloff = 1.0 - smoothstep(0.0, u_interaction_radius, d);
        if (d > 1e-4) {
            p.xz += (away / d) * falloff * u_interaction_pos.w * bend;
            p.y -= falloff * u_interaction_pos.w * bend * 0.3;
        }
    }

    v_world_pos = p;
    v_color = in_color;
    v_uv = in_uv;
    gl_Position = u_proj * u_view * vec4(p, 1.0);
}
"""

    frag = prefix + """
in vec3 v_world_pos;
in vec4 v_color;
in vec2 v_uv;

uniform vec3 u_cam_pos;
uniform float u_fog_start;
uniform float u_fog_end;

out vec4 f_color;

void main() {
    // Vertex color already carries gradient, jitter and AO
    vec3 col = v_color.rgb;
    // Slightly darker blade edges
    col *= 0.85 + 0.15 * (1.0 - abs(v_uv.x - 0.5) * 2.0);

    vec2 d = v_world_pos.xz - u_cam_pos.xz;
    float dist = length(d);
    float fog_amount = smoothstep(u_fog_start, u_fog_end, dist);
    vec3 fog_col = vec3(0.70, 0.80, 0.92);
    col = mix(col, fog_col, fog_amount);

    f_color = vec4(col, 1.0);
}
"""

    return vert, frag


def interleave_chunk(chunk: ChunkRecord) -> np.ndarray:
    """Pack a chunk as float32 rows of pos(3) + color(4) + uv(2)."""
    return np.hstack([chunk.positions, chunk.colors, chunk.uvs]).astype(np.float32)
