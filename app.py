import io
import logging
import uuid

from flask import Flask, jsonify, request, send_file, session

import settings
from gemini_service import GeminiImageService
from sessions import SessionRegistry
from studio import StudioController, StudioState

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.secret_key = settings.SECRET_KEY
app.config["MAX_CONTENT_LENGTH"] = settings.MAX_UPLOAD_MB * 1024 * 1024

service = GeminiImageService()
registry = SessionRegistry(
    lambda: StudioController(service),
    max_sessions=settings.MAX_SESSIONS,
    ttl_seconds=settings.SESSION_TTL_SECONDS,
)


def current_controller(create=False):
    """The session's controller; only created when ``create`` is set."""
    sid = session.get("sid")
    if not create:
        return registry.lookup(sid)
    if not sid:
        sid = uuid.uuid4().hex
        session["sid"] = sid
    return registry.get(sid)


def state_of(controller):
    state = controller.state if controller is not None else StudioState()
    return state.to_dict()


@app.route("/")
def index():
    return HTML_PAGE


@app.route("/api/state")
def get_state():
    return jsonify(state_of(current_controller()))


@app.route("/api/image", methods=["POST"])
def select_image():
    upload = request.files.get("file")
    if upload is not None:
        controller = current_controller(create=True)
        controller.select_image(upload)
        return jsonify(state_of(controller))

    data = request.get_json(silent=True)
    image_data = data.get("image_data", "") if isinstance(data, dict) else ""
    if not image_data:
        return jsonify({"error": "No image provided"}), 400

    controller = current_controller(create=True)
    controller.select_data_uri(image_data)
    return jsonify(state_of(controller))


@app.route("/api/generate", methods=["POST"])
def generate():
    controller = current_controller()
    started = controller.generate_catalog_image() if controller is not None else False
    result = state_of(controller)
    result["started"] = started
    return jsonify(result)


@app.route("/api/reset", methods=["POST"])
def reset():
    controller = current_controller()
    if controller is not None:
        controller.reset_result()
    return jsonify(state_of(controller))


@app.route("/api/download")
def download():
    controller = current_controller()
    result = controller.download_result() if controller is not None else None
    if result is None:
        return jsonify({"error": "No result to download"}), 404
    return send_file(
        io.BytesIO(result.data),
        mimetype=result.mime_type,
        as_attachment=True,
        download_name=result.filename,
    )


@app.route("/api/session", methods=["DELETE"])
def end_session():
    sid = session.pop("sid", None)
    if sid:
        registry.release(sid)
    return "", 204


@app.errorhandler(413)
def too_large(_error):
    return jsonify({"error": f"Image is larger than {settings.MAX_UPLOAD_MB} MB"}), 413


HTML_PAGE = r"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Silk Studio AI</title>
<style>
  *, *::before, *::after { box-sizing: border-box; margin: 0; padding: 0; }

  :root {
    --ink: #1a1a1a;
    --cream: #f5f2ed;
    --gold: #c5a059;
  }

  body {
    font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
    background: var(--cream);
    color: var(--ink);
    min-height: 100vh;
    display: flex;
    flex-direction: column;
  }

  .serif { font-family: 'Cormorant Garamond', Georgia, serif; }

  header {
    padding: 24px 32px;
    border-bottom: 1px solid rgba(26,26,26,0.1);
    display: flex;
    align-items: center;
    gap: 10px;
    background: rgba(255,255,255,0.5);
  }
  header h1 { font-size: 1.5rem; font-weight: 500; }

  main {
    flex: 1;
    max-width: 1200px;
    width: 100%;
    margin: 0 auto;
    padding: 64px 24px;
    display: grid;
    grid-template-columns: 1fr 1fr;
    gap: 64px;
    align-items: start;
  }

  .hero h2 { font-size: 3.2rem; font-weight: 300; line-height: 1.1; }
  .hero p { margin-top: 16px; max-width: 420px; line-height: 1.6; color: rgba(26,26,26,0.6); }

  .dropzone {
    margin-top: 40px;
    aspect-ratio: 4 / 3;
    border: 2px dashed rgba(26,26,26,0.1);
    border-radius: 24px;
    background: rgba(255,255,255,0.3);
    display: flex;
    align-items: center;
    justify-content: center;
    cursor: pointer;
    overflow: hidden;
    transition: background 0.2s, border-color 0.2s;
  }
  .dropzone:hover { background: rgba(255,255,255,0.5); border-color: rgba(26,26,26,0.2); }
  .dropzone.has-image { border-style: solid; border-color: rgba(26,26,26,0.05); }
  .dropzone img { width: 100%; height: 100%; object-fit: contain; padding: 32px; }
  .dropzone .hint { text-align: center; color: rgba(26,26,26,0.4); font-size: 0.8rem; }
  .dropzone .hint strong { display: block; color: var(--ink); font-size: 1rem; margin-bottom: 4px; }

  button {
    font: inherit;
    cursor: pointer;
    border: none;
  }

  .generate-btn {
    margin-top: 24px;
    width: 100%;
    padding: 20px;
    border-radius: 16px;
    background: var(--ink);
    color: var(--cream);
    font-weight: 500;
    transition: opacity 0.15s;
  }
  .generate-btn:disabled { background: rgba(26,26,26,0.1); color: rgba(26,26,26,0.3); cursor: not-allowed; }

  .error {
    display: none;
    margin-top: 16px;
    padding: 12px;
    border-radius: 12px;
    text-align: center;
    font-size: 0.85rem;
    color: #ef4444;
    background: #fef2f2;
    border: 1px solid #fee2e2;
  }
  .error.visible { display: block; }

  .preview {
    position: relative;
    aspect-ratio: 4 / 5;
    border-radius: 32px;
    background: rgba(26,26,26,0.02);
    border: 1px solid rgba(26,26,26,0.05);
    display: flex;
    flex-direction: column;
    align-items: center;
    justify-content: center;
    text-align: center;
    overflow: hidden;
  }
  .preview.has-result { background: #fff; box-shadow: 0 24px 48px rgba(26,26,26,0.1); }
  .preview img { width: 100%; height: 100%; object-fit: cover; }
  .preview .placeholder h3 { font-size: 1.5rem; font-weight: 500; }
  .preview .placeholder p { margin-top: 8px; font-size: 0.85rem; color: rgba(26,26,26,0.4); max-width: 240px; }

  .badge {
    position: absolute;
    top: 24px;
    right: 24px;
    background: rgba(255,255,255,0.8);
    padding: 8px 16px;
    border-radius: 999px;
    font-size: 0.62rem;
    font-weight: 700;
    letter-spacing: 0.1em;
    text-transform: uppercase;
  }

  .overlay {
    display: none;
    position: absolute;
    inset: 0;
    background: rgba(255,255,255,0.4);
    backdrop-filter: blur(2px);
    align-items: center;
    justify-content: center;
  }
  .overlay.visible { display: flex; }
  .overlay .card { background: #fff; padding: 32px; border-radius: 24px; box-shadow: 0 12px 32px rgba(0,0,0,0.1); }
  .overlay .timer { font-size: 0.65rem; letter-spacing: 0.1em; text-transform: uppercase; opacity: 0.4; margin-top: 4px; }

  .actions { display: none; gap: 16px; margin-top: 32px; }
  .actions.visible { display: flex; }
  .actions button {
    padding: 16px 24px;
    background: #fff;
    border: 1px solid rgba(26,26,26,0.1);
    border-radius: 16px;
    font-weight: 500;
    transition: background 0.15s;
  }
  .actions button:hover { background: var(--cream); }
  .actions .download-btn { flex: 1; }

  footer {
    padding: 48px 32px;
    border-top: 1px solid rgba(26,26,26,0.05);
    font-size: 0.65rem;
    font-weight: 700;
    letter-spacing: 0.2em;
    text-transform: uppercase;
    opacity: 0.4;
    text-align: center;
  }

  @media (max-width: 900px) {
    main { grid-template-columns: 1fr; }
  }
</style>
</head>
<body>

<header>
  <h1 class="serif">Silk Studio AI</h1>
</header>

<main>
  <!-- ── LEFT: Input ── -->
  <section>
    <div class="hero">
      <h2 class="serif">Elevate your <br><em>product aesthetic.</em></h2>
      <p>Transform raw product photography into museum-grade catalog imagery.
         The original design is preserved while the studio environment is crafted around it.</p>
    </div>

    <div id="dropzone" class="dropzone" onclick="fileInput.click()">
      <div id="dropHint" class="hint">
        <strong>Upload product image</strong>
        Drag and drop or click to browse
      </div>
      <img id="sourceImg" alt="Original" hidden>
    </div>
    <input id="fileInput" type="file" accept="image/*" hidden>

    <button id="generateBtn" class="generate-btn" onclick="generateImage()" disabled>Generate Catalog Image</button>
    <p id="errorBox" class="error"></p>
  </section>

  <!-- ── RIGHT: Output ── -->
  <section>
    <div id="preview" class="preview">
      <div id="placeholder" class="placeholder">
        <h3 class="serif">Studio Preview</h3>
        <p>Upload an image and click generate to see the studio transformation.</p>
      </div>
      <img id="resultImg" alt="Generated Result" hidden>
      <span id="resultBadge" class="badge" hidden>Studio Rendered</span>
      <div id="overlay" class="overlay">
        <div class="card">
          <p>Refining Texture</p>
          <p id="timer" class="timer">Please wait</p>
        </div>
      </div>
    </div>
    <div id="actions" class="actions">
      <button class="download-btn" onclick="downloadResult()">Download High-Res</button>
      <button onclick="resetResult()" title="Back to preview">&#8635;</button>
    </div>
  </section>
</main>

<footer>Powered by Gemini Vision</footer>

<script>
  const fileInput = document.getElementById('fileInput');
  const dropzone = document.getElementById('dropzone');
  const dropHint = document.getElementById('dropHint');
  const sourceImg = document.getElementById('sourceImg');
  const generateBtn = document.getElementById('generateBtn');
  const errorBox = document.getElementById('errorBox');
  const preview = document.getElementById('preview');
  const placeholder = document.getElementById('placeholder');
  const resultImg = document.getElementById('resultImg');
  const resultBadge = document.getElementById('resultBadge');
  const overlay = document.getElementById('overlay');
  const timerEl = document.getElementById('timer');
  const actions = document.getElementById('actions');

  // ── Timer helper ──
  function createTimer(el) {
    let interval = null;
    return {
      start() {
        const t0 = Date.now();
        clearInterval(interval);
        interval = setInterval(() => {
          el.textContent = ((Date.now() - t0) / 1000).toFixed(1) + 's';
        }, 100);
      },
      stop() { clearInterval(interval); interval = null; el.textContent = 'Please wait'; }
    };
  }
  const timer = createTimer(timerEl);

  // ── API call helper ──
  async function callApi(path, options) {
    const res = await fetch(path, options);
    const data = await res.json();
    if (!res.ok) throw new Error(data.error || 'HTTP ' + res.status);
    return data;
  }

  function render(state) {
    const hasSource = !!state.source_image;
    dropzone.classList.toggle('has-image', hasSource);
    dropHint.hidden = hasSource;
    sourceImg.hidden = !hasSource;
    if (hasSource && sourceImg.src !== state.source_image) sourceImg.src = state.source_image;

    generateBtn.disabled = !hasSource || state.is_generating;
    generateBtn.textContent = state.is_generating ? 'Crafting Studio Environment...' : 'Generate Catalog Image';

    errorBox.textContent = state.error || '';
    errorBox.classList.toggle('visible', !!state.error);

    const hasResult = !!state.result_image;
    preview.classList.toggle('has-result', hasResult);
    placeholder.hidden = hasResult;
    resultImg.hidden = !hasResult;
    resultBadge.hidden = !hasResult;
    actions.classList.toggle('visible', hasResult);
    if (hasResult) resultImg.src = state.result_image;

    overlay.classList.toggle('visible', state.is_generating && !hasResult);
  }

  function showError(message) {
    errorBox.textContent = message;
    errorBox.classList.add('visible');
  }

  fileInput.addEventListener('change', () => {
    const file = fileInput.files[0];
    if (!file) return;
    const reader = new FileReader();
    reader.onloadend = async () => {
      try {
        render(await callApi('/api/image', {
          method: 'POST',
          headers: { 'Content-Type': 'application/json' },
          body: JSON.stringify({ image_data: reader.result }),
        }));
      } catch (err) {
        showError(err.message);
      }
      fileInput.value = '';
    };
    reader.readAsDataURL(file);
  });

  async function generateImage() {
    generateBtn.disabled = true;
    generateBtn.textContent = 'Crafting Studio Environment...';
    errorBox.classList.remove('visible');
    overlay.classList.toggle('visible', resultImg.hidden);
    timer.start();
    try {
      render(await callApi('/api/generate', { method: 'POST' }));
    } catch (err) {
      showError(err.message || 'An error occurred during generation.');
      generateBtn.disabled = false;
      generateBtn.textContent = 'Generate Catalog Image';
      overlay.classList.remove('visible');
    } finally {
      timer.stop();
    }
  }

  function downloadResult() {
    const link = document.createElement('a');
    link.href = '/api/download';
    link.download = 'silk-studio-result.png';
    document.body.appendChild(link);
    link.click();
    document.body.removeChild(link);
  }

  async function resetResult() {
    try {
      render(await callApi('/api/reset', { method: 'POST' }));
    } catch (err) {
      showError(err.message);
    }
  }

  window.addEventListener('pagehide', () => {
    fetch('/api/session', { method: 'DELETE', keepalive: true });
  });

  callApi('/api/state').then(render).catch(err => showError(err.message));
</script>
</body>
</html>
"""

if __name__ == "__main__":
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app.run(debug=True, port=settings.PORT, threaded=True)
