"""The single-page HTML dashboard served under /ui."""

from __future__ import annotations

import json
from functools import lru_cache

RESOURCE = "trips"
TITLE_FIELD = "name"

FIELDS: tuple[dict[str, str], ...] = (
    {"name": "id", "label": "Id", "type": "text"},
    {"name": "name", "label": "Name", "type": "text"},
    {"name": "destination", "label": "Destination", "type": "text"},
    {"name": "start_date", "label": "Start Date", "type": "date"},
    {"name": "end_date", "label": "End Date", "type": "date"},
    {"name": "budget", "label": "Budget", "type": "integer"},
    {"name": "itinerary", "label": "Itinerary", "type": "text"},
    {"name": "status", "label": "Status", "type": "text"},
    {"name": "notes", "label": "Notes", "type": "textarea"},
    {"name": "created_at", "label": "Created At", "type": "text"},
)

_PALETTE = {
    "bg": "#1a1410",
    "bg2": "#241e18",
    "bg3": "#2e261e",
    "rust": "#e8753a",
    "leather": "#a0845c",
    "cream": "#f0e6d3",
    "dim": "#bfb5a3",
    "muted": "#7a7060",
    "gold": "#d4a843",
    "red": "#c94444",
}

_STYLES: tuple[tuple[str, str], ...] = (
    ("*", "margin:0;padding:0;box-sizing:border-box"),
    ("body", "background:var(--bg);color:var(--cream);"
             "font-family:ui-monospace,Menlo,Consolas,monospace;line-height:1.5"),
    (".hdr", "display:flex;justify-content:space-between;align-items:center;"
             "padding:1rem 1.5rem;border-bottom:1px solid var(--bg3)"),
    (".hdr h1", "font-size:.9rem;letter-spacing:2px"),
    (".hdr h1 span", "color:var(--rust)"),
    (".main", "max-width:960px;margin:0 auto;padding:1.5rem"),
    (".stats", "display:grid;grid-template-columns:repeat(auto-fit,minmax(140px,1fr));"
               "gap:.5rem;margin-bottom:1rem"),
    (".st", "background:var(--bg2);border:1px solid var(--bg3);padding:.7rem;text-align:center"),
    (".st-v", "font-size:1.3rem;font-weight:700;color:var(--gold)"),
    (".st-l", "font-size:.5rem;color:var(--muted);text-transform:uppercase;letter-spacing:1px"),
    (".search", "width:100%;margin-bottom:1rem;padding:.4rem .6rem;background:var(--bg2);"
                "border:1px solid var(--bg3);color:var(--cream);font:inherit;font-size:.7rem"),
    (".search:focus", "outline:none;border-color:var(--leather)"),
    (".count-label", "font-size:.6rem;color:var(--muted);margin-bottom:.5rem"),
    (".item", "background:var(--bg2);border:1px solid var(--bg3);padding:.8rem 1rem;margin-bottom:.5rem"),
    (".item:hover", "border-color:var(--leather)"),
    (".item-top", "display:flex;justify-content:space-between;gap:.8rem"),
    (".item-title", "flex:1;font-size:.85rem;font-weight:700"),
    (".item-actions", "display:flex;gap:.3rem;flex-shrink:0"),
    (".item-meta", "display:flex;flex-wrap:wrap;gap:.6rem;margin-top:.3rem;font-size:.55rem;color:var(--muted)"),
    (".item-meta strong", "color:var(--dim)"),
    (".sep", "color:var(--bg3)"),
    (".muted", "color:var(--muted)"),
    (".item-extra", "display:flex;flex-direction:column;gap:.15rem;margin-top:.4rem;padding-top:.35rem;"
                    "border-top:1px dashed var(--bg3);font-size:.58rem"),
    (".extra-row", "display:flex;gap:.4rem"),
    (".extra-label", "min-width:90px;color:var(--muted);text-transform:uppercase"),
    (".btn", "font:inherit;font-size:.6rem;padding:.25rem .5rem;cursor:pointer;"
             "border:1px solid var(--bg3);background:var(--bg);color:var(--dim)"),
    (".btn:hover", "border-color:var(--leather);color:var(--cream)"),
    (".btn-p", "background:var(--rust);border-color:var(--rust);color:#fff"),
    (".btn-sm", "font-size:.55rem;padding:.2rem .4rem"),
    (".danger", "color:var(--red)"),
    (".modal-bg", "display:none;position:fixed;inset:0;z-index:100;background:rgba(0,0,0,.65);"
                  "align-items:center;justify-content:center"),
    (".modal-bg.open", "display:flex"),
    (".modal", "width:480px;max-width:92vw;max-height:90vh;overflow-y:auto;padding:1.5rem;"
               "background:var(--bg2);border:1px solid var(--bg3)"),
    (".modal h2", "font-size:.8rem;margin-bottom:1rem;color:var(--rust);letter-spacing:1px"),
    (".fr", "margin-bottom:.6rem"),
    (".fr label", "display:block;font-size:.55rem;color:var(--muted);text-transform:uppercase;"
                  "margin-bottom:.2rem"),
    (".fr input,.fr select,.fr textarea", "width:100%;padding:.4rem .5rem;background:var(--bg);"
                                          "border:1px solid var(--bg3);color:var(--cream);"
                                          "font:inherit;font-size:.7rem"),
    (".fr-checkbox", "display:flex;align-items:center;gap:.5rem;margin-bottom:.6rem;font-size:.65rem"),
    (".fr-section", "margin-top:1rem;padding-top:.8rem;border-top:1px solid var(--bg3)"),
    (".fr-section-label", "font-size:.55rem;color:var(--rust);text-transform:uppercase;margin-bottom:.5rem"),
    (".acts", "display:flex;justify-content:flex-end;gap:.4rem;margin-top:1rem"),
    (".empty", "text-align:center;padding:3rem;color:var(--muted);font-style:italic;font-size:.85rem"),
)

_SCRIPT = r"""
const API = '/api';
const RESOURCE = '__RESOURCE__';
const TITLE_FIELD = '__TITLE_FIELD__';
const fields = __FIELDS_JSON__;
const HIDDEN = new Set(['id', 'created_at']);
const ui = {emptyMessage: 'No items yet. Click "+ New" to add one.', sectionLabel: 'Additional Details'};
let items = [];
let editing = null;

const $ = id => document.getElementById(id);
const ENTITIES = {'&': '&amp;', '<': '&lt;', '>': '&gt;', '"': '&quot;', "'": '&#39;'};

function esc(value) {
  if (value === undefined || value === null) return '';
  return String(value).replace(/[&<>"']/g, ch => ENTITIES[ch]);
}

function money(cents) {
  const n = parseInt(cents || 0, 10);
  if (Number.isNaN(n)) return '$0.00';
  return (n < 0 ? '-' : '') + '$' + (Math.abs(n) / 100).toFixed(2);
}

function parseMoney(text) {
  const n = parseFloat(String(text || '').replace(/[^0-9.\-]/g, ''));
  return Number.isNaN(n) ? 0 : Math.round(n * 100);
}

function shortDate(text) {
  if (!text) return '';
  const d = new Date(text);
  if (Number.isNaN(d.getTime())) return text;
  return d.toLocaleDateString('en-US', {year: 'numeric', month: 'short', day: 'numeric'});
}

async function getJSON(path) {
  const resp = await fetch(API + path);
  return resp.json();
}

async function load() {
  try {
    const data = await getJSON('/' + RESOURCE);
    const list = data[RESOURCE] || [];
    try {
      const extras = await getJSON('/extras/' + RESOURCE);
      for (const item of list) {
        for (const [key, value] of Object.entries(extras[item.id] || {})) {
          if (item[key] === undefined) item[key] = value;
        }
      }
    } catch (e) {}
    items = list;
  } catch (e) {
    console.error('load failed', e);
    items = [];
  }
  $('stats').innerHTML = `<div class="st"><div class="st-v">${items.length}</div><div class="st-l">Total</div></div>`;
  render();
}

function matches(item, q) {
  return Object.values(item).some(v => v !== null && v !== undefined && String(v).toLowerCase().includes(q));
}

function render() {
  const q = ($('search').value || '').toLowerCase();
  const shown = q ? items.filter(item => matches(item, q)) : items;
  $('count').textContent = shown.length + (shown.length === 1 ? ' item' : ' items');
  $('list').innerHTML = shown.length
    ? shown.map(card).join('')
    : `<div class="empty">${esc(ui.emptyMessage)}</div>`;
}

function display(field, value) {
  if (field.type === 'money') return money(value);
  if (field.type === 'date' || field.type === 'datetime') return shortDate(value);
  const text = String(value);
  return text.length > 30 ? text.slice(0, 30) + '\u2026' : text;
}

function card(item) {
  const id = esc(item.id);
  const meta = fields
    .filter(f => !f.isCustom && f.name !== TITLE_FIELD && !HIDDEN.has(f.name))
    .filter(f => ![undefined, null, '', 0].includes(item[f.name]))
    .map(f => `<span><strong>${esc(f.label)}:</strong> ${esc(display(f, item[f.name]))}</span>`);
  if (item.created_at) meta.push(`<span class="muted">${esc(shortDate(item.created_at))}</span>`);
  const extra = fields
    .filter(f => f.isCustom && ![undefined, null, ''].includes(item[f.name]))
    .map(f => `<div class="extra-row"><span class="extra-label">${esc(f.label)}</span><span>${esc(item[f.name])}</span></div>`);
  return `<div class="item"><div class="item-top"><div class="item-title">${esc(item[TITLE_FIELD] || '(untitled)')}</div>`
    + `<div class="item-actions"><button class="btn btn-sm" data-edit="${id}">Edit</button>`
    + `<button class="btn btn-sm danger" data-del="${id}">&#10005;</button></div></div>`
    + (meta.length ? `<div class="item-meta">${meta.join('<span class="sep">\u00b7</span>')}</div>` : '')
    + (extra.length ? `<div class="item-extra">${extra.join('')}</div>` : '')
    + '</div>';
}

function fieldInput(field, value) {
  const v = value === undefined || value === null ? '' : value;
  const fid = 'f-' + field.name;
  if (field.type === 'checkbox') {
    return `<div class="fr-checkbox"><input type="checkbox" id="${fid}"${v ? ' checked' : ''}><label for="${fid}">${esc(field.label)}</label></div>`;
  }
  let control;
  switch (field.type) {
    case 'select': {
      const options = (field.options || []).map(o => {
        const label = typeof o === 'string' ? o.charAt(0).toUpperCase() + o.slice(1) : String(o);
        return `<option value="${esc(o)}"${String(v) === String(o) ? ' selected' : ''}>${esc(label)}</option>`;
      });
      const blank = field.required ? '' : '<option value="">Select...</option>';
      control = `<select id="${fid}">${blank}${options.join('')}</select>`;
      break;
    }
    case 'textarea':
      control = `<textarea id="${fid}" rows="3">${esc(v)}</textarea>`;
      break;
    case 'money':
      control = `<input type="text" id="${fid}" value="${esc(v ? money(v).replace('$', '') : '')}" placeholder="0.00">`;
      break;
    case 'date':
      control = `<input type="date" id="${fid}" value="${esc(String(v).slice(0, 10))}">`;
      break;
    case 'datetime':
      control = `<input type="datetime-local" id="${fid}" value="${esc(String(v).slice(0, 16))}">`;
      break;
    case 'number':
    case 'integer':
      control = `<input type="number" id="${fid}" value="${esc(v)}">`;
      break;
    default:
      control = `<input type="text" id="${fid}" value="${esc(v)}">`;
  }
  return `<div class="fr"><label for="${fid}">${esc(field.label)}${field.required ? ' *' : ''}</label>${control}</div>`;
}

function openModal(item) {
  editing = item ? item.id : null;
  const data = item || {};
  const editable = fields.filter(f => !HIDDEN.has(f.name));
  const native = editable.filter(f => !f.isCustom).map(f => fieldInput(f, data[f.name])).join('');
  const custom = editable.filter(f => f.isCustom).map(f => fieldInput(f, data[f.name])).join('');
  $('mdl').innerHTML = `<h2>${item ? 'EDIT' : 'NEW'}</h2>${native}`
    + (custom ? `<div class="fr-section"><div class="fr-section-label">${esc(ui.sectionLabel)}</div>${custom}</div>` : '')
    + '<div class="acts"><button class="btn" id="cancel-btn">Cancel</button>'
    + `<button class="btn btn-p" id="save-btn">${item ? 'Save' : 'Create'}</button></div>`;
  $('cancel-btn').addEventListener('click', closeModal);
  $('save-btn').addEventListener('click', submitForm);
  $('mbg').classList.add('open');
}

function openEdit(id) {
  const item = items.find(i => i.id === id);
  if (item) openModal(item);
}

function closeModal() {
  $('mbg').classList.remove('open');
  editing = null;
}

function readValue(field, el) {
  switch (field.type) {
    case 'checkbox': return el.checked ? 1 : 0;
    case 'money': return parseMoney(el.value);
    case 'number': return parseFloat(el.value) || 0;
    case 'integer': return parseInt(el.value, 10) || 0;
    default: return el.value;
  }
}

function send(method, path, body) {
  return fetch(API + path, {method, headers: {'Content-Type': 'application/json'}, body: JSON.stringify(body)});
}

async function failure(resp) {
  const err = await resp.json().catch(() => ({}));
  alert(err.error || 'Save failed');
}

async function submitForm() {
  const body = {};
  const extras = {};
  for (const field of fields) {
    if (HIDDEN.has(field.name)) continue;
    const el = $('f-' + field.name);
    if (!el) continue;
    (field.isCustom ? extras : body)[field.name] = readValue(field, el);
  }
  let id = editing;
  try {
    if (id) {
      const resp = await send('PUT', `/${RESOURCE}/${id}`, body);
      if (!resp.ok) return failure(resp);
    } else {
      const resp = await send('POST', '/' + RESOURCE, body);
      if (!resp.ok) return failure(resp);
      id = (await resp.json()).id;
    }
    if (id && Object.keys(extras).length) {
      await send('PUT', `/extras/${RESOURCE}/${id}`, extras).catch(() => {});
    }
  } catch (e) {
    alert('Network error: ' + e.message);
    return;
  }
  closeModal();
  load();
}

async function remove(id) {
  if (!confirm('Delete this item?')) return;
  await fetch(`${API}/${RESOURCE}/${id}`, {method: 'DELETE'});
  load();
}

async function personalize() {
  try {
    const cfg = await getJSON('/config');
    if (!cfg || typeof cfg !== 'object') return;
    if (cfg.dashboard_title) {
      $('dash-title').innerHTML = '<span>&#9670;</span> ' + esc(cfg.dashboard_title);
      document.title = cfg.dashboard_title;
    }
    if (cfg.empty_state_message) ui.emptyMessage = cfg.empty_state_message;
    if (cfg.primary_label) ui.sectionLabel = cfg.primary_label + ' Details';
    for (const cf of Array.isArray(cfg.custom_fields) ? cfg.custom_fields : []) {
      if (!cf || !cf.name || !cf.label || fields.some(f => f.name === cf.name)) continue;
      fields.push({name: cf.name, label: cf.label, type: cf.type || 'text', options: cf.options || [], isCustom: true});
    }
  } catch (e) {}
}

$('list').addEventListener('click', e => {
  const button = e.target.closest('button');
  if (!button) return;
  if (button.dataset.edit) openEdit(button.dataset.edit);
  else if (button.dataset.del) remove(button.dataset.del);
});
$('mbg').addEventListener('click', e => { if (e.target === e.currentTarget) closeModal(); });
$('search').addEventListener('input', render);
$('new-btn').addEventListener('click', () => openModal(null));
document.addEventListener('keydown', e => { if (e.key === 'Escape') closeModal(); });
personalize().finally(load);
"""

_BODY = """<div class="hdr">
<h1 id="dash-title"><span>&#9670;</span> WAYSTATION</h1>
<button class="btn btn-p" id="new-btn">+ New</button>
</div>
<div class="main">
<div class="stats" id="stats"></div>
<input class="search" id="search" placeholder="Search...">
<div class="count-label" id="count"></div>
<div id="list"></div>
</div>
<div class="modal-bg" id="mbg"><div class="modal" id="mdl"></div></div>"""


def _stylesheet() -> str:
    variables = ";".join(f"--{name}:{value}" for name, value in _PALETTE.items())
    rules = "\n".join(f"{selector}{{{body}}}" for selector, body in _STYLES)
    return f":root{{{variables}}}\n{rules}"


@lru_cache(maxsize=1)
def dashboard_html() -> str:
    """Return the dashboard page as HTML text."""
    script = (
        _SCRIPT.replace("__FIELDS_JSON__", json.dumps(list(FIELDS)))
        .replace("__RESOURCE__", RESOURCE)
        .replace("__TITLE_FIELD__", TITLE_FIELD)
    )
    return "\n".join(
        (
            "<!DOCTYPE html>",
            '<html lang="en">',
            "<head>",
            '<meta charset="UTF-8">',
            '<meta name="viewport" content="width=device-width,initial-scale=1.0">',
            "<title>Waystation</title>",
            f"<style>\n{_stylesheet()}\n</style>",
            "</head>",
            "<body>",
            _BODY,
            f"<script>{script}</script>",
            "</body>",
            "</html>",
        )
    )