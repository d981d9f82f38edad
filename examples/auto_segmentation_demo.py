"""
Performance demonstration for the auto segmentation flood fill.

Compares the scipy component-labelling backend with the pure-Python
worklist backend on synthetic product shots, then runs a full edit
session and writes the cutout next to this script.

Install dependencies:
    pip install -e .
"""

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import time
from PIL import Image, ImageDraw

from OC_Libs.RasterLib.pixel_buffer import PixelBuffer
from OC_Libs.RasterLib.segmentation import segment
from OC_Libs.SessionLib.edit_session import EditSession
from OC_Libs.SessionLib.export import save_export


def make_product_shot(size):
    """White backdrop with a dark ellipse subject."""
    img = Image.new("RGBA", (size, size), (245, 245, 245, 255))
    draw = ImageDraw.Draw(img)
    margin = size // 5
    draw.ellipse((margin, margin, size - margin, size - margin), fill=(40, 60, 90, 255))
    return img


def benchmark_segmentation(size, tolerance, smoothing, iterations=3):
    """Benchmark both flood fill backends on one image size."""
    print(f"\nBenchmarking {size}x{size} image, tolerance={tolerance}, smoothing={smoothing}")
    print("-" * 60)

    buffer = PixelBuffer.from_image(make_product_shot(size))
    averages = {}

    for backend in ("scipy", "worklist"):
        times = []
        for i in range(iterations):
            start = time.time()
            segment(buffer, tolerance, smoothing, backend=backend)
            elapsed = time.time() - start
            times.append(elapsed)
            label = " (warmup)" if i == 0 else ""
            print(f"  {backend:8s} run {i+1}: {elapsed:.3f}s{label}")
        averages[backend] = sum(times[1:]) / len(times[1:])
        print(f"  {backend:8s} average (excluding warmup): {averages[backend]:.3f}s")

    return averages["scipy"], averages["worklist"]


def run_session_demo(output_dir):
    """Segment, erase the middle of the subject, and export."""
    session = EditSession()
    session.load_image(make_product_shot(400))
    session.run_auto_segmentation(tolerance_percent=15, smoothing_passes=2)
    session.paint_stroke(200, 200, radius=20)
    session.commit_mask()
    path = save_export(session, output_dir, "demo_cutout")
    print(f"\nExported cutout to {path} (history depth {session.history_depth})")


def main():
    """Run segmentation benchmarks."""
    print("=" * 60)
    print("Auto Segmentation Performance Demonstration")
    print("=" * 60)

    test_cases = [
        (200, 15, 0),
        (500, 15, 0),
        (500, 15, 3),
        (1000, 15, 0),
    ]

    results = []
    for size, tolerance, smoothing in test_cases:
        try:
            avg_scipy, avg_worklist = benchmark_segmentation(size, tolerance, smoothing)
            results.append((size, smoothing, avg_scipy, avg_worklist))
        except KeyboardInterrupt:
            print("\n\nBenchmark interrupted by user")
            break

    # Summary
    print("\n" + "=" * 60)
    print("Summary")
    print("=" * 60)
    print("\nSize       Smooth  scipy     worklist  Speedup")
    print("-" * 60)
    for size, smoothing, avg_scipy, avg_worklist in results:
        speedup = avg_worklist / avg_scipy if avg_scipy > 0 else 1.0
        print(f"{size:4d}x{size:<4d}  {smoothing:3d}     {avg_scipy:6.3f}s  "
              f"{avg_worklist:6.3f}s  {speedup:5.2f}x")

    run_session_demo(Path(__file__).parent)
    print("\n" + "=" * 60)


if __name__ == "__main__":
    main()
