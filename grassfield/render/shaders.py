from __future__ import annotations

def pick_glsl_version(ctx_version_code: int) -> int:
    """Pick a GLSL version compatible with the active OpenGL context.

    - For OpenGL >= 3.3: use GLSL 330
    - For OpenGL >= 3.2: use GLSL 150
    """
    if ctx_version_code >= 330:
        return 330
    return 150

_VERT_BODY = """
in vec3 in_pos;
in vec3 in_norm;
in vec3 in_color;

uniform mat4 u_proj;
uniform mat4 u_view;

out vec3 v_world_pos;
out vec3 v_norm;
out vec3 v_color;

void main() {
    v_world_pos = in_pos;
    v_norm = in_norm;
    v_color = in_color;
    gl_Position = u_proj * u_view * vec4(in_pos, 1.0);
}
"""

_FRAG_BODY = """in vec3 v_world_pos;
in vec3 v_norm;
in vec3 v_color;

uniform vec3 u_light_dir;
uniform vec3 u_cam_pos;
uniform float u_fog_start;
uniform float u_fog_end;

out vec4 f_color;

void main() {
    vec3 n = normalize(v_norm);
    vec3 l = normalize(u_light_dir);
    float diff = max(dot(n, l), 0.0);

    // Ground under the blades reads darker than the blades themselves
    vec3 base = v_color * 0.75;

    float ambient = 0.50;
    vec3 col = base * (ambient + 0.85 * diff);

    vec2 d = v_world_pos.xz - u_cam_pos.xz;
    float dist = length(d);
    float fog_amount = smoothstep(u_fog_start, u_fog_end, dist);
    vec3 fog_col = vec3(0.70, 0.80, 0.92);
    col = mix(col, fog_col, fog_amount);

    f_color = vec4(col, 1.0);
}"""

def ground_shader_sources(ctx_version_code: int) -> tuple[str, str]:
    ver = pick_glsl_version(ctx_version_code)
    prefix = f"#version {ver}\n"
    return prefix + _VERT_BODY, prefix + _FRAG_BODY
