import logging
import os

from django.conf import settings
from PIL import Image, ImageDraw, ImageFont

logger = logging.getLogger(__name__)

IMAGE_SIZE = (800, 600)
TOP_N = 5


def summary_image_path():
    return str(settings.SUMMARY_IMAGE_PATH)


def top_countries_by_gdp(countries, limit=TOP_N):
    """Countries with no estimate rank as zero."""
    return sorted(countries, key=lambda c: c.estimated_gdp or 0, reverse=True)[:limit]


def summary_lines(countries, timestamp):
    """Text of the summary image, top to bottom."""
    lines = [
        "Country Data Summary",
        f"Total Countries: {len(countries)}",
        f"Last Refreshed: {timestamp.isoformat()}",
        "Top 5 Countries by Estimated GDP:",
    ]
    for c in top_countries_by_gdp(countries):
        lines.append(f"{c.name}: ${c.estimated_gdp or 0:.2f}")
    return lines


def generate_summary_image(countries, timestamp, path=None):
    """Renders the PNG summary of a refresh cycle and returns its path."""
    path = path or summary_image_path()

    img = Image.new('RGB', IMAGE_SIZE, color='white')
    draw = ImageDraw.Draw(img)
    font = ImageFont.load_default()

    title, total, refreshed, heading, *ranked = summary_lines(countries, timestamp)
    y = 50
    draw.text((50, y), title, fill=(0, 0, 0), font=font)
    y += 40
    draw.text((50, y), total, fill=(0, 0, 0), font=font)
    y += 40
    draw.text((50, y), refreshed, fill=(0, 0, 0), font=font)

    y += 60
    draw.text((50, y), heading, fill=(0, 0, 0), font=font)
    y += 30

    for line in ranked:
        draw.text((70, y), line, fill=(0, 0, 0), font=font)
        y += 30

    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    # readers of the cached file never see a partial write
    tmp_path = f"{path}.tmp"
    try:
        img.save(tmp_path, format='PNG')
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
    logger.info("Summary image written to %s", path)
    return path
