"""
HTML for the demo frontend
"""

INDEX_HTML = """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>OpenTelemetry Demo</title>
  <style>
    body { font-family: system-ui, sans-serif; background: #f4f5f7; margin: 0; }
    .container { max-width: 640px; margin: 4rem auto; background: #fff; padding: 2rem; border-radius: 8px; }
    .send-button { font-size: 1rem; padding: 0.75rem 1.5rem; cursor: pointer; }
    .status-message { margin-top: 1rem; padding: 0.75rem; border-radius: 4px; }
    .status-message.success { background: #e3f7e8; }
    .status-message.error { background: #fde8e8; }
  </style>
</head>
<body>
  <div class="container">
    <h1>OpenTelemetry Demo</h1>
    <p class="subtitle">
      Click the button below to send a message through the system.<br>
      The trace will flow: Frontend &rarr; Producer API &rarr; Queue &rarr; Consumer
    </p>

    <button id="send" class="send-button">Send Message</button>
    <div id="status" class="status-message" hidden></div>

    <div class="info">
      <h3>View Traces:</h3>
      <ul>
        <li><a href="__JAEGER_URL__" target="_blank" rel="noopener noreferrer">Jaeger UI (Local)</a></li>
        <li><a href="https://portal.azure.com" target="_blank" rel="noopener noreferrer">Azure Application Insights (Portal)</a></li>
      </ul>
    </div>
  </div>

  <script>
    const button = document.getElementById('send');
    const status = document.getElementById('status');

    button.addEventListener('click', async () => {
      button.disabled = true;
      button.textContent = 'Sending...';
      status.hidden = true;

      try {
        const response = await fetch('send', { method: 'POST' });
        const data = await response.json();
        if (!response.ok) {
          throw new Error(data.error || `HTTP error! status: ${response.status}`);
        }
        status.className = 'status-message success';
        status.textContent = `Message sent! ID: ${data.messageId || 'N/A'} (trace ${data.traceId || 'n/a'})`;
      } catch (error) {
        status.className = 'status-message error';
        status.textContent = `Error: ${error.message}`;
      } finally {
        status.hidden = false;
        button.disabled = false;
        button.textContent = 'Send Message';
      }
    });
  </script>
</body>
</html>
"""


def render_index(jaeger_url: str) -> str:
    return INDEX_HTML.replace("__JAEGER_URL__", jaeger_url)
