from __future__ import annotations

import random
import time
from dataclasses import replace

import moderngl
import numpy as np
import pygame

from grassfield.config import (
    APP_VERSION,
    DEFAULT_EYE_HEIGHT,
    DEFAULT_TURN_RATE,
    DEFAULT_WALK_SPEED,
    FOG_END,
    FOG_START,
    FPS_CAP,
    GROUND_STEP,
    HEIGHT_SMOOTH_K,
    LIGHT_DIR,
    WINDOW_HEIGHT,
    WINDOW_WIDTH,
)
from grassfield.render.camera import CameraWalk
from grassfield.render.frustum import visibility_test
from grassfield.render.renderer import Renderer
from grassfield.util.math import normalize
from grassfield.world.mesh_builder import build_ground_mesh
from grassfield.world.terrain import HeightFieldTerrain
from grassfield.world.world import GrassField


def _init_pygame_gl() -> None:
    pygame.init()
    pygame.display.gl_set_attribute(pygame.GL_CONTEXT_MAJOR_VERSION, 3)
    pygame.display.gl_set_attribute(pygame.GL_CONTEXT_MINOR_VERSION, 3)
    pygame.display.gl_set_attribute(pygame.GL_CONTEXT_PROFILE_MASK, pygame.GL_CONTEXT_PROFILE_CORE)
    pygame.display.gl_set_attribute(pygame.GL_DEPTH_SIZE, 24)
    pygame.display.gl_set_attribute(pygame.GL_DOUBLEBUFFER, 1)


def _surface_to_rgba_bytes(surf: pygame.Surface) -> tuple[bytes, int, int]:
    s = surf.convert_alpha()
    w, h = s.get_size()
    data = pygame.image.tostring(s, "RGBA", False)
    return data, w, h


def _regenerate(field: GrassField, renderer: Renderer, seed: int) -> None:
    """Rebuild terrain + grass for `seed` and replace every GPU buffer."""
    p = replace(field.params, seed=int(seed))
    terrain = HeightFieldTerrain.procedural(seed, p.domain_width, p.domain_depth)
    field.generate(p, terrain)
    vbo, ibo = build_ground_mesh(field.terrain, p.domain_width, p.domain_depth, step=GROUND_STEP)
    renderer.upload_ground(vbo, ibo)
    renderer.upload_chunks(field.chunks)


def run_app(field: GrassField, *, debug: bool) -> None:
    """Interactive preview: walk over the field, R regenerates with a new seed."""
    _init_pygame_gl()

    flags = pygame.OPENGL | pygame.DOUBLEBUF | pygame.RESIZABLE
    pygame.display.set_mode((WINDOW_WIDTH, WINDOW_HEIGHT), flags)
    pygame.display.set_caption(f"grassfield v{APP_VERSION} (seed={field.params.seed})")

    try:
        ctx = moderngl.create_context()
    except Exception as e:
        pygame.quit()
        raise RuntimeError("Failed to create ModernGL context (need OpenGL 3.2+)") from e

    if debug:
        print(f"[grassfield] moderngl ctx version_code={ctx.version_code} vendor={ctx.info.get('GL_VENDOR')} renderer={ctx.info.get('GL_RENDERER')}")

    ctx.viewport = (0, 0, WINDOW_WIDTH, WINDOW_HEIGHT)
    renderer = Renderer(ctx, WINDOW_WIDTH, WINDOW_HEIGHT)
    _regenerate(field, renderer, field.params.seed)

    cam = CameraWalk(speed=DEFAULT_WALK_SPEED, turn_rate=DEFAULT_TURN_RATE, eye_height=DEFAULT_EYE_HEIGHT, smooth_k=HEIGHT_SMOOTH_K)
    cam.x = field.params.domain_width * 0.5
    cam.z = field.params.domain_depth * 0.15

    clock = pygame.time.Clock()
    running = True
    last_t = time.perf_counter()
    start_t = last_t
    last_log = last_t
    last_hud = last_t

    light_dir = normalize(np.array(LIGHT_DIR, dtype=np.float32))
    max_distance = field.classifier.params.max_render_distance

    pygame.font.init()
    font = pygame.font.SysFont("Menlo", 16) or pygame.font.Font(None, 16)
    fps_est = 0.0
    drawn = 0

    try:
        while running:
            now = time.perf_counter()
            dt = min(now - last_t, 0.05)
            last_t = now

            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                elif event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                    running = False
                elif event.type == pygame.KEYDOWN and event.key == pygame.K_r:
                    seed = random.randint(0, 2**31 - 1)
                    _regenerate(field, renderer, seed)
                    pygame.display.set_caption(f"grassfield v{APP_VERSION} (seed={seed})")
                elif event.type == pygame.VIDEORESIZE:
                    w, h = max(64, event.w), max(64, event.h)
                    pygame.display.set_mode((w, h), flags)
                    renderer.resize(w, h)

            keys = pygame.key.get_pressed()
            forward = float(keys[pygame.K_UP] or keys[pygame.K_w]) - float(keys[pygame.K_DOWN] or keys[pygame.K_s])
            turn = float(keys[pygame.K_RIGHT] or keys[pygame.K_d]) - float(keys[pygame.K_LEFT] or keys[pygame.K_a])
            lift = float(keys[pygame.K_e]) - float(keys[pygame.K_q])
            cam.update(dt, field.terrain.height, forward=forward, turn=turn, lift=lift)

            if dt > 0:
                inst_fps = 1.0 / dt
                fps_est = (0.9 * fps_est + 0.1 * inst_fps) if fps_est > 0 else inst_fps

            view = cam.view_matrix()
            eye = cam.eye()
            field.classify(eye, visibility_test(view, renderer.proj, eye, max_distance))

            # Interaction follows the walker's feet
            feet = (cam.x, float(field.terrain.height(cam.x, cam.z)), cam.z)
            frame = field.update_animation(now - start_t, feet)

            renderer.begin_frame()

            sun_world = eye + light_dir * 1000.0
            p = np.array([sun_world[0], sun_world[1], sun_world[2], 1.0], dtype=np.float32)
            clip = p @ view @ renderer.proj
            wv = float(clip[3]) if float(clip[3]) != 0.0 else 1.0
            renderer.draw_sky((float(clip[0] / wv), float(clip[1] / wv)))

            renderer.set_common_uniforms(
                view=view,
                cam_pos=eye,
                light_dir=light_dir,
                fog_start=FOG_START,
                fog_end=FOG_END,
            )
            renderer.set_animation(frame)
            renderer.draw_ground()
            drawn = renderer.draw_chunks()

            if debug:
                if now - last_hud >= 0.12:
                    last_hud = now
                    s = field.summary()
                    stats = field.stats
                    lines = [
                        f"grassfield v{APP_VERSION}",
                        f"seed={field.params.seed} policy={field.params.type_policy} noise={field.params.placement_noise}",
                        f"x={cam.x:.1f} z={cam.z:.1f} y={cam.y:.1f} fps~{fps_est:.0f}",
                        f"blades={stats.total_blades if stats else 0} chunks={len(field.chunks)} drawn={drawn}",
                        f"LOD0={s.lod0} LOD1={s.lod1} LOD2={s.lod2} culled={s.culled}",
                        f"culling={s.culling_efficiency:.0f}%  [R] new seed",
                    ]
                    pad = 6
                    line_h = font.get_linesize()
                    w = max(font.size(line)[0] for line in lines) + pad * 2
                    h = line_h * len(lines) + pad * 2
                    surf = pygame.Surface((w, h), pygame.SRCALPHA)
                    surf.fill((0, 0, 0, 130))
                    y = pad
                    for line in lines:
                        img = font.render(line, True, (255, 255, 255))
                        surf.blit(img, (pad, y))
                        y += line_h
                    rgba, tw, th = _surface_to_rgba_bytes(surf)
                    renderer.hud_update_rgba(rgba, tw, th)
                renderer.draw_hud()

                if now - last_log >= 1.0:
                    last_log = now
                    s = field.summary()
                    print(f"[grassfield] fps~{fps_est:.0f} visible={s.visible} culled={s.culled} drawn={drawn}")

            pygame.display.flip()

            if FPS_CAP and FPS_CAP > 0:
                clock.tick(FPS_CAP)
            else:
                clock.tick()
    finally:
        renderer.release()
        pygame.quit()
