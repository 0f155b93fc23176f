"""
Minimal HTML forms for each operation
"""
from html import escape

from fastapi import APIRouter
from fastapi.responses import HTMLResponse

router = APIRouter()

NAV = """
<nav>
  <a href="/">Replace Audio</a>
  <a href="/image-to-video">Image to Video</a>
  <a href="/audio-trim">Audio Trimmer</a>
  <a href="/repeat-audio">Audio Repeater</a>
</nav>
"""


def render_page(title: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8" />
  <title>{escape(title)}</title>
</head>
<body>
{NAV}
<h1>{escape(title)}</h1>
{body}
</body>
</html>"""


def render_video_result(heading: str, url: str, width: int = 480) -> str:
    """Embedded player plus download link for a produced video."""
    url = escape(url, quote=True)
    return f"""
<h2>{escape(heading)}</h2>
<video controls width="{width}">
  <source src="{url}" type="video/mp4" />
  Your browser does not support the video tag.
</video><br/>
<a class="download-link" href="{url}" download>Download Video</a>
"""


def render_merge_form(result_html: str = "") -> str:
    return render_page("Replace Video's Audio with Your Own", f"""
<form action="/" method="POST" enctype="multipart/form-data">
  <label>Upload Video File: <input type="file" name="video" accept="video/*" required /></label>
  <label>Upload Audio File: <input type="file" name="audio" accept="audio/*" required /></label>
  <button type="submit">Replace Audio</button>
</form>
{result_html}""")


def render_image_form(result_html: str = "") -> str:
    return render_page("Create a Video from an Image", f"""
<form action="/create" method="POST" enctype="multipart/form-data">
  <label>Select Image: <input type="file" name="image" accept="image/*" required /></label>
  <label>Video Duration (in seconds): <input type="number" name="duration" min="1" required /></label>
  <button type="submit">Create Video</button>
</form>
{result_html}""")


TRIM_BODY = """
<form id="uploadForm" enctype="multipart/form-data">
  <input type="file" name="file" required />
  <button type="submit">Upload</button>
</form>
<div id="trimControls" hidden>
  <label>Start Time: <input type="text" id="start" value="00:00:00.0" /></label>
  <label>End Time: <input type="text" id="end" value="00:00:00.0" /></label>
  <button id="trimButton">Trim</button>
</div>
<div id="result"></div>
<script>
  let filePath = '';
  document.getElementById('uploadForm').addEventListener('submit', async (e) => {
    e.preventDefault();
    const res = await fetch('/upload', { method: 'POST', body: new FormData(e.target) });
    const data = await res.json();
    if (!res.ok) { alert(data.error.message); return; }
    filePath = data.path;
    document.getElementById('end').value = data.duration;
    document.getElementById('trimControls').hidden = false;
  });
  document.getElementById('trimButton').addEventListener('click', async () => {
    const body = JSON.stringify({
      start: document.getElementById('start').value,
      end: document.getElementById('end').value,
      filePath,
    });
    const res = await fetch('/trim', { method: 'POST', headers: { 'Content-Type': 'application/json' }, body });
    const data = await res.json();
    if (!res.ok) { alert(data.error.message); return; }
    document.getElementById('result').innerHTML =
      `<audio controls src="${data.trimmed}"></audio><a href="${data.trimmed}" download>Download Trimmed MP3</a>`;
  });
</script>
"""

REPEAT_BODY = """
<form id="repeatForm" enctype="multipart/form-data">
  <input type="file" name="audio" accept="audio/*" required />
  <input type="number" name="repeatCount" min="1" max="100" placeholder="Repeat count" required />
  <button type="submit">Upload &amp; Repeat</button>
</form>
<div id="result"></div>
<script>
  document.getElementById('repeatForm').addEventListener('submit', async (e) => {
    e.preventDefault();
    const res = await fetch('/process', { method: 'POST', body: new FormData(e.target) });
    const data = await res.json();
    if (!res.ok) { alert(data.error.message); return; }
    document.getElementById('result').innerHTML =
      `<audio controls src="${data.audioUrl}"></audio><a href="${data.audioUrl}" download="repeated-audio.mp3">Download Audio</a>`;
  });
</script>
"""


@router.get("/", response_class=HTMLResponse)
async def merge_page() -> str:
    return render_merge_form()


@router.get("/image-to-video", response_class=HTMLResponse)
async def image_to_video_page() -> str:
    return render_image_form()


@router.get("/audio-trim", response_class=HTMLResponse)
async def trim_page() -> str:
    return render_page("Audio Trimmer", TRIM_BODY)


@router.get("/repeat-audio", response_class=HTMLResponse)
async def repeat_page() -> str:
    return render_page("Audio Repeater", REPEAT_BODY)
