import logging
import sys
from pathlib import Path

from previews.services.metadata import read_metadata
from previews.services.preview_service import preview_service

logging.basicConfig(level=logging.INFO, format="%(levelname)s - %(message)s")

print("🕵️ STARTING PREVIEW TRACER...")

if len(sys.argv) < 2:
    print("Usage: python preview_tracer.py <image> [target_kb] [max_dimension]")
    sys.exit(1)

source = Path(sys.argv[1])
options = {}
if len(sys.argv) > 2:
    options["target_size_kb"] = int(sys.argv[2])
if len(sys.argv) > 3:
    options["max_dimension"] = int(sys.argv[3])

try:
    # 1. Read
    data = source.read_bytes()
    meta = read_metadata(data)
    print(f"✅ Read {len(data)} bytes: {meta.format} {meta.width}x{meta.height}")

    # 2. Process
    result = preview_service.process_for_preview(data, options)
    dims = result.final_dimensions
    print(f"✅ Strategy: {result.strategy.value} | Level: {result.compression_level_index}")
    print(f"✅ Output: {dims.width}x{dims.height}, {result.actual_size_kb}KB ({result.format})")
    if result.avg_color:
        print(f"🎨 Average color: {result.avg_color}")

    # 3. Write next to the source
    out_path = source.with_name(f"{source.stem}.preview.{result.format}")
    out_path.write_bytes(result.processed_buffer)
    print(f"\n🎉 Preview written to {out_path}")

except FileNotFoundError:
    print(f"\n❌ FILE NOT FOUND: {source}")
except Exception as e:
    print(f"\n❌ PREVIEW FAILED: {type(e).__name__}: {e}")
