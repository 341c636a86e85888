from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, Response

from blip.services.chart import render_placeholder

router = APIRouter()

@router.get("/chart.png")
def chart(request: Request):
    # sync endpoint: FastAPI renders it in the threadpool, off the event loop
    mon = request.app.state.monitor
    image = mon.renderer.render()
    headers = {"Cache-Control": "no-store"}
    if image is None:
        headers["X-Chart-State"] = "no-data"
        png = render_placeholder(mon.renderer.width, mon.renderer.height)
    else:
        headers["X-Chart-State"] = "ready"
        png = image.png
    return Response(content=png, media_type="image/png", headers=headers)

@router.get("/", response_class=HTMLResponse)
def root(request: Request):
    settings = request.app.state.settings
    refresh_ms = int(settings.SAMPLE_INTERVAL_S * 1000)

    html = """<!DOCTYPE html>
<html lang='en'>
<head>
<meta charset='utf-8'/>
<meta name='viewport' content='width=device-width, initial-scale=1'/>
<title>__TITLE__</title>
<style>
body{font-family:system-ui,sans-serif;margin:2rem;color:#222}
.muted{color:#777}
#chartWrap{position:relative;max-width:800px}
#chart{width:100%;border:1px solid #ddd}
#loading{position:absolute;top:45%;width:100%;text-align:center;font-weight:bold}
table{border-collapse:collapse;margin-top:1rem}
td,th{padding:4px 12px;border-bottom:1px solid #eee;text-align:left}
.down{color:#b00020;font-weight:bold}
</style>
</head>
<body>
<h1>__TITLE__</h1>
<p class='muted'>One sample every __INTERVAL__ ms · <span id='conn'>connecting…</span></p>

<div id='chartWrap'>
  <img id='chart' alt='latency chart'/>
  <div id='loading'>Loading...</div>
</div>

<table>
<thead><tr><th>Target</th><th>Latency</th></tr></thead>
<tbody id='tbody'><tr><td colspan='2' class='muted'>Waiting for the first sample…</td></tr></tbody>
</table>
<p id='lastTs' class='muted'></p>

<script>
async function refreshChart(){
  try{
    const r = await fetch('/chart.png', {cache:'no-store'});
    const ready = r.headers.get('X-Chart-State') === 'ready';
    const blob = await r.blob();
    const img = document.getElementById('chart');
    const old = img.src;
    img.src = URL.createObjectURL(blob);
    if(old) URL.revokeObjectURL(old);
    document.getElementById('loading').style.display = ready ? 'none' : 'block';
  }catch(e){ console.error(e); }
}

function renderRow(name, m){
  const tr = document.createElement('tr');
  const tdName = document.createElement('td'); tdName.textContent = name; tr.appendChild(tdName);
  const tdLat = document.createElement('td');
  if(m.failed){ tdLat.textContent = 'failed' + (m.error ? ' (' + m.error + ')' : ''); tdLat.className = 'down'; }
  else { tdLat.textContent = m.latency_ms + ' ms'; }
  tr.appendChild(tdLat);
  return tr;
}

function connect(){
  const proto = location.protocol === 'https:' ? 'wss://' : 'ws://';
  const ws = new WebSocket(proto + location.host + '/stream');
  const conn = document.getElementById('conn');
  ws.onopen = () => { conn.textContent = 'live'; };
  ws.onclose = () => { conn.textContent = 'disconnected, retrying…'; setTimeout(connect, 2000); };
  ws.onmessage = (ev) => {
    const sample = JSON.parse(ev.data);
    const body = document.getElementById('tbody');
    body.innerHTML = '';
    for(const [name, m] of Object.entries(sample.latencies)){ body.appendChild(renderRow(name, m)); }
    document.getElementById('lastTs').textContent = 'Updated: ' + new Date(sample.timestamp).toLocaleTimeString();
  };
}

connect();
refreshChart(); setInterval(refreshChart, __INTERVAL__);
</script>
</body>
</html>"""
    html = html.replace("__TITLE__", settings.APP_TITLE)
    html = html.replace("__INTERVAL__", str(refresh_ms))
    return HTMLResponse(html)
