from fastapi import APIRouter
from fastapi.responses import HTMLResponse

router = APIRouter(tags=["UI"])

_PAGE = """<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>AI Content Detector</title>
    <style>
      body { font-family: system-ui, sans-serif; max-width: 800px; margin: 0 auto; padding: 2rem; }
      .tabs button { padding: 0.5rem 1rem; margin-right: 0.25rem; cursor: pointer; }
      .tabs button.active { font-weight: 700; }
      .panel { display: none; margin-top: 1rem; }
      .panel.active { display: block; }
      textarea { width: 100%; padding: 0.5rem; }
      #run { margin-top: 1rem; padding: 0.75rem 2rem; font-size: 1rem; }
      #result { margin-top: 2rem; padding: 1.5rem; border: 1px solid #ccc; border-radius: 8px; display: none; }
      .band-high { color: #b00020; } .band-medium { color: #b26a00; } .band-low { color: #1b5e20; }
    </style>
  </head>
  <body>
    <h1>AI Content Detector</h1>
    <p>Detect AI-generated text and images.</p>
    <div class="tabs">
      <button data-tab="text" class="active">Text</button>
      <button data-tab="image">Image</button>
    </div>
    <div id="panel-text" class="panel active">
      <textarea id="text" rows="10" placeholder="Enter at least 10 characters to analyze..."></textarea>
    </div>
    <div id="panel-image" class="panel">
      <input id="image" type="file" accept="image/*" />
    </div>
    <button id="run">Detect AI Content</button>
    <div id="result"></div>
    <script>
      let tab = "text";
      document.querySelectorAll(".tabs button").forEach((button) => {
        button.addEventListener("click", () => {
          tab = button.dataset.tab;
          document.querySelectorAll(".tabs button").forEach((b) => b.classList.toggle("active", b === button));
          document.querySelectorAll(".panel").forEach((p) => p.classList.toggle("active", p.id === "panel-" + tab));
        });
      });

      function escapeHtml(value) {
        return String(value).replaceAll("&", "&amp;").replaceAll("<", "&lt;").replaceAll(">", "&gt;");
      }

      function render(data) {
        const box = document.getElementById("result");
        box.style.display = "block";
        if (data.status === "error") {
          const wait = data.retryAfterSeconds ? ` Try again in ${data.retryAfterSeconds}s.` : "";
          box.innerHTML = `<strong>Error:</strong> ${escapeHtml(data.error)}${wait}`;
          return;
        }
        let html = `<h2>Detection Results</h2>
          <p><strong>AI Generated:</strong> ${data.isAiGenerated ? "Yes" : "No"}</p>
          <p><strong>Confidence:</strong> ${(data.confidence * 100).toFixed(1)}%
            <span class="band-${data.confidenceBand}">(${data.confidenceBand})</span></p>
          <p><strong>Content Type:</strong> ${escapeHtml(data.type)}</p>`;
        if (data.reasoning) html += `<p><strong>Reasoning:</strong> ${escapeHtml(data.reasoning)}</p>`;
        if (data.classifications) {
          html += "<ul>" + data.classifications
            .map((c) => `<li>${escapeHtml(c.label)}: ${(c.score * 100).toFixed(1)}%</li>`)
            .join("") + "</ul>";
        }
        box.innerHTML = html;
      }

      document.getElementById("run").addEventListener("click", async () => {
        const button = document.getElementById("run");
        button.disabled = true;
        button.textContent = "Analyzing...";
        try {
          let response;
          if (tab === "text") {
            response = await fetch("/api/detect-text", {
              method: "POST",
              headers: { "Content-Type": "application/json" },
              body: JSON.stringify({ text: document.getElementById("text").value }),
            });
          } else {
            const file = document.getElementById("image").files[0];
            if (!file) { render({ status: "error", error: "Pick an image first." }); return; }
            const form = new FormData();
            form.append("image", file);
            response = await fetch("/api/detect-image", { method: "POST", body: form });
          }
          render(await response.json());
        } catch (error) {
          render({ status: "error", error: "Detection failed" });
        } finally {
          button.disabled = false;
          button.textContent = "Detect AI Content";
        }
      });
    </script>
  </body>
</html>
"""


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
def index() -> str:
    """
    Minimal page: text/image tabs, upload widget and result rendering.
    """
    return _PAGE
