# access_scout/browser/probes.py
"""
In-page probes: every script the engine evaluates in a page.

A :class:`Probe` is a typed request/response pair: ``script`` is a JS
function expression taking one JSON argument and ``returns`` documents the
JSON shape that comes back. Callers go through :func:`run_probe` and turn
the reply into Python dataclasses; no closures cross the automation
boundary.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from access_scout.browser.base import BrowserPage

__all__ = (
    "Probe",
    "run_probe",
    "probe_name",
    "FOCUSABLE_SELECTOR",
    "SPA_ROUTE_HOOK",
    "TEXT_RUNS",
    "FOCUSED_ELEMENT",
    "FOCUSABLE_ELEMENTS",
    "LANDMARKS",
    "LINKS",
    "FORM_CONTROLS",
    "HEADINGS",
    "IMAGES",
    "DOCUMENT_META",
    "SKIP_LINK_CANDIDATES",
    "SKIP_LINK_ACTIVATE",
    "SPA_ROUTES",
    "SCROLL_TO_BOTTOM",
    "RULE_ENGINE_RUN",
)

FOCUSABLE_SELECTOR = (
    'a[href], button, input, select, textarea, summary, iframe, '
    '[tabindex]:not([tabindex="-1"]), [contenteditable="true"]'
)


@dataclass(frozen=True, slots=True)
class Probe:
    name: str
    script: str
    returns: str


# Shared helpers, inlined into every probe body.
_HELPERS = r"""
  const cssPath = (el) => {
    if (el.id) return '#' + el.id;
    const parts = [];
    let e = el;
    while (e && e.nodeType === 1 && parts.length < 4) {
      let part = e.tagName.toLowerCase();
      let sib = e.previousElementSibling;
      let cnt = 1;
      while (sib) { if (sib.tagName === e.tagName) cnt++; sib = sib.previousElementSibling; }
      part += ':nth-of-type(' + cnt + ')';
      parts.unshift(part);
      e = e.parentElement;
    }
    return parts.join('>');
  };
  const isVisible = (el) => {
    const style = window.getComputedStyle(el);
    if (style.display === 'none' || style.visibility === 'hidden') return false;
    const rect = el.getBoundingClientRect();
    return rect.width > 0 && rect.height > 0;
  };
  const textOf = (el) => (el ? (el.textContent || '') : '').replace(/\s+/g, ' ').trim();
  const refsText = (ids) => (ids || '').split(/\s+/).filter(Boolean)
    .map((id) => textOf(document.getElementById(id))).filter(Boolean);
  const effectiveBackground = (el) => {
    let e = el;
    while (e) {
      const bg = window.getComputedStyle(e).backgroundColor;
      if (bg && bg !== 'transparent' && bg !== 'rgba(0, 0, 0, 0)') return bg;
      e = e.parentElement;
    }
    return 'rgb(255, 255, 255)';
  };
"""


def _probe(name: str, body: str, returns: str) -> Probe:
    script = "(arg) => {\n" + _HELPERS + body + "\n}"
    return Probe(name=name, script=script, returns=returns)


TEXT_RUNS = _probe(
    "text_runs",
    r"""
  const max = (arg && arg.maxRuns) || 2000;
  const hidden = (el) => {
    const style = window.getComputedStyle(el);
    if (style.visibility === 'hidden' || style.display === 'none' || parseFloat(style.opacity || '1') === 0) return true;
    if (el.closest('[aria-hidden="true"]')) return true;
    const rect = el.getBoundingClientRect();
    return rect.width <= 0 || rect.height <= 0;
  };
  const walker = document.createTreeWalker(document.body, NodeFilter.SHOW_TEXT, {
    acceptNode(node) {
      if (!(node.textContent || '').trim()) return NodeFilter.FILTER_REJECT;
      const el = node.parentElement;
      if (!el || ['SCRIPT', 'STYLE', 'NOSCRIPT'].includes(el.tagName) || hidden(el)) return NodeFilter.FILTER_REJECT;
      return NodeFilter.FILTER_ACCEPT;
    }
  });
  const out = [];
  while (walker.nextNode() && out.length < max) {
    const el = walker.currentNode.parentElement;
    const style = window.getComputedStyle(el);
    const weightStr = style.fontWeight || '400';
    out.push({
      text: (walker.currentNode.textContent || '').trim().slice(0, 100),
      selector: cssPath(el),
      color: style.color,
      background: effectiveBackground(el),
      opacity: parseFloat(style.opacity || '1'),
      fontSizePx: parseFloat(style.fontSize || '0'),
      fontWeight: parseInt(weightStr, 10) || (weightStr === 'bold' ? 700 : 400),
    });
  }
  return out;
""",
    "[{text, selector, color, background, opacity, fontSizePx, fontWeight}]",
)

FOCUSED_ELEMENT = _probe(
    "focused_element",
    r"""
  const el = document.activeElement;
  if (!el || el === document.body || el === document.documentElement) return null;
  const rect = el.getBoundingClientRect();
  const style = window.getComputedStyle(el);
  const visible = rect.width > 0 && rect.height > 0 && style.visibility !== 'hidden'
    && parseFloat(style.opacity || '1') > 0 && rect.bottom > 0 && rect.right > 0
    && rect.top < window.innerHeight && rect.left < window.innerWidth;
  return {
    selector: cssPath(el),
    tag: el.tagName.toLowerCase(),
    rect: { x: rect.x, y: rect.y, width: rect.width, height: rect.height },
    visible,
    outlineStyle: style.outlineStyle,
    outlineWidth: parseFloat(style.outlineWidth || '0') || 0,
    outlineColor: style.outlineColor,
    boxShadow: style.boxShadow || 'none',
    backgroundColor: effectiveBackground(el),
    tabindex: el.getAttribute('tabindex') || '',
  };
""",
    "null | {selector, tag, rect, visible, outlineStyle, outlineWidth, outlineColor, boxShadow, backgroundColor, tabindex}",
)

FOCUSABLE_ELEMENTS = _probe(
    "focusable_elements",
    r"""
  return Array.from(document.querySelectorAll(arg.selector))
    .map((el) => ({ selector: cssPath(el), tabindex: el.getAttribute('tabindex') || '' }));
""",
    "[{selector, tabindex}]",
)

LANDMARKS = _probe(
    "landmarks",
    r"""
  const cand = Array.from(document.querySelectorAll(
    'main, header, nav, aside, footer, section, form, [role]'));
  const index = new Map(cand.map((el, i) => [el, i]));
  const ancestorsOf = (el) => {
    const out = [];
    let cur = el.parentElement;
    while (cur) { if (index.has(cur)) out.push(index.get(cur)); cur = cur.parentElement; }
    return out;
  };
  const candidates = cand.map((el, i) => ({
    index: i,
    tag: el.tagName.toLowerCase(),
    role: (el.getAttribute('role') || '').trim().toLowerCase(),
    selector: cssPath(el),
    parentIsBody: el.parentElement === document.body,
    hasName: !!((el.getAttribute('aria-label') || '').trim() || refsText(el.getAttribute('aria-labelledby')).length),
    inSectioning: !!(el.parentElement && el.parentElement.closest('article, aside, main, nav, section')),
    ancestors: ancestorsOf(el),
  }));
  const nodes = [];
  for (const el of Array.from(document.body.querySelectorAll('*'))) {
    if (['SCRIPT', 'STYLE', 'NOSCRIPT', 'TEMPLATE'].includes(el.tagName) || !isVisible(el)) continue;
    const anc = ancestorsOf(el);
    if (index.has(el)) anc.unshift(index.get(el));
    nodes.push({ selector: cssPath(el), ancestors: anc });
  }
  return { candidates, nodes };
""",
    "{candidates: [{index, tag, role, selector, parentIsBody, hasName, inSectioning, ancestors}], nodes: [{selector, ancestors}]}",
)

LINKS = _probe(
    "links",
    r"""
  return Array.from(document.querySelectorAll('a[href]')).filter(isVisible).map((el) => ({
    text: textOf(el),
    ariaLabel: (el.getAttribute('aria-label') || '').trim(),
    labelledbyText: refsText(el.getAttribute('aria-labelledby')).join(' '),
    title: (el.getAttribute('title') || '').trim(),
    imageAlt: Array.from(el.querySelectorAll('img[alt]')).map((i) => i.getAttribute('alt').trim()).filter(Boolean).join(' '),
    href: el.getAttribute('href') || '',
    selector: cssPath(el),
  }));
""",
    "[{text, ariaLabel, labelledbyText, title, imageAlt, href, selector}]",
)

FORM_CONTROLS = _probe(
    "form_controls",
    r"""
  const out = [];
  for (const el of Array.from(document.querySelectorAll('input, select, textarea'))) {
    const tag = el.tagName.toLowerCase();
    const type = (el.getAttribute('type') || (tag === 'input' ? 'text' : tag)).toLowerCase();
    if (['hidden', 'submit', 'reset', 'button', 'image'].includes(type) || el.disabled) continue;
    const id = el.getAttribute('id') || '';
    const labelFor = id ? Array.from(document.querySelectorAll('label[for="' + CSS.escape(id) + '"]')).map(textOf) : [];
    const wrapper = el.closest('label');
    const describedBy = (el.getAttribute('aria-describedby') || '').split(/\s+/).filter(Boolean).map((ref) => {
      const d = document.getElementById(ref);
      return {
        id: ref,
        exists: !!d,
        role: d ? (d.getAttribute('role') || '').toLowerCase() : '',
        ariaLive: d ? (d.getAttribute('aria-live') || '').toLowerCase() : '',
        text: textOf(d),
      };
    });
    const fieldset = el.closest('fieldset');
    const legend = fieldset ? fieldset.querySelector('legend') : null;
    const groupEl = el.closest('[role="group"], [role="radiogroup"]');
    const name = el.getAttribute('name') || '';
    out.push({
      selector: id ? '#' + CSS.escape(id) : tag + (name ? '[name="' + CSS.escape(name) + '"]' : ''),
      tag, type, name, id,
      labelFor,
      wrapperLabel: wrapper ? textOf(wrapper) : '',
      ariaLabel: (el.getAttribute('aria-label') || '').trim(),
      labelledby: refsText(el.getAttribute('aria-labelledby')),
      title: (el.getAttribute('title') || '').trim(),
      placeholder: (el.getAttribute('placeholder') || '').trim(),
      required: el.hasAttribute('required'),
      ariaRequired: el.getAttribute('aria-required') === 'true',
      ariaInvalid: el.getAttribute('aria-invalid') === 'true',
      validationAttrs: ['pattern', 'min', 'max', 'minlength', 'maxlength'].filter((a) => el.hasAttribute(a)),
      describedBy,
      autocomplete: (el.getAttribute('autocomplete') || '').trim().toLowerCase(),
      group: {
        legend: legend ? textOf(legend) : '',
        role: groupEl ? groupEl.getAttribute('role') : '',
        name: groupEl ? ((groupEl.getAttribute('aria-label') || '').trim() || refsText(groupEl.getAttribute('aria-labelledby')).join(' ')) : '',
      },
    });
  }
  return out;
""",
    "[{selector, tag, type, name, id, labelFor[], wrapperLabel, ariaLabel, labelledby[], title, placeholder, "
    "required, ariaRequired, ariaInvalid, validationAttrs[], describedBy[], autocomplete, group}]",
)

HEADINGS = _probe(
    "headings",
    r"""
  const out = [];
  for (const el of Array.from(document.querySelectorAll('h1,h2,h3,h4,h5,h6,[role="heading"]'))) {
    const style = window.getComputedStyle(el);
    if (style.display === 'none' || style.visibility === 'hidden') continue;
    const roleHeading = el.getAttribute('role') === 'heading';
    const level = roleHeading
      ? parseInt(el.getAttribute('aria-level') || '2', 10)
      : parseInt(el.tagName.substring(1), 10);
    out.push({ level, text: textOf(el), id: el.id || '', roleHeading, selector: cssPath(el) });
  }
  return out;
""",
    "[{level, text, id, roleHeading, selector}]",
)

IMAGES = _probe(
    "images",
    r"""
  const out = [];
  const decorative = (el) => ['presentation', 'none'].includes((el.getAttribute('role') || '').toLowerCase())
    || el.getAttribute('aria-hidden') === 'true';
  for (const el of Array.from(document.querySelectorAll('img'))) {
    if (!isVisible(el)) continue;
    const wrapper = el.closest('a,button');
    out.push({
      type: 'img',
      alt: el.getAttribute('alt'),
      src: el.getAttribute('src') || '',
      decorative: decorative(el),
      parentText: wrapper ? textOf(wrapper) : '',
      naturalWidth: el.naturalWidth || 0,
      naturalHeight: el.naturalHeight || 0,
      selector: cssPath(el),
    });
  }
  for (const el of Array.from(document.querySelectorAll('svg'))) {
    if (!isVisible(el)) continue;
    const named = !!(el.querySelector('title') || el.querySelector('desc')
      || (el.getAttribute('aria-label') || '').trim()
      || refsText(el.getAttribute('aria-labelledby')).length);
    out.push({
      type: 'svg',
      named,
      role: el.getAttribute('role') || '',
      decorative: decorative(el),
      inLink: !!el.closest('a,button'),
      selector: cssPath(el),
    });
  }
  for (const el of Array.from(document.querySelectorAll('input[type="image"]'))) {
    if (!isVisible(el)) continue;
    out.push({ type: 'input-image', alt: el.getAttribute('alt') || '', selector: cssPath(el) });
  }
  for (const el of Array.from(document.querySelectorAll('area'))) {
    out.push({
      type: 'area',
      alt: el.getAttribute('alt') || '',
      ariaLabel: el.getAttribute('aria-label') || '',
      selector: cssPath(el),
    });
  }
  return out;
""",
    "[{type: img|svg|input-image|area, selector, alt?, src?, decorative?, parentText?, "
    "naturalWidth?, naturalHeight?, named?, role?, inLink?, ariaLabel?}]",
)

DOCUMENT_META = _probe(
    "document_meta",
    r"""
  const root = document.documentElement;
  const counts = {};
  for (const el of Array.from(document.querySelectorAll('body [lang]'))) {
    const l = (el.getAttribute('lang') || '').trim().toLowerCase();
    if (l) counts[l] = (counts[l] || 0) + 1;
  }
  const domLang = Object.entries(counts).sort((a, b) => b[1] - a[1]).map((e) => e[0])[0] || '';
  return {
    title: (document.title || '').trim(),
    lang: (root.getAttribute('lang') || '').trim(),
    xmlLang: (root.getAttribute('xml:lang') || '').trim(),
    metaCharset: (document.querySelector('meta[charset]') || { getAttribute: () => '' }).getAttribute('charset') || '',
    navLang: (navigator.language || '').trim(),
    domLang,
  };
""",
    "{title, lang, xmlLang, metaCharset, navLang, domLang}",
)

SKIP_LINK_CANDIDATES = _probe(
    "skip_link_candidates",
    r"""
  const links = Array.from(document.querySelectorAll('a[href^="#"]')).map((a) => ({
    text: textOf(a) || (a.getAttribute('aria-label') || '').trim(),
    href: a.getAttribute('href') || '',
    selector: cssPath(a),
    className: typeof a.className === 'string' ? a.className : '',
    id: a.id || '',
  }));
  const targets = Array.from(new Set(Array.from(document.querySelectorAll('[id],[name]'))
    .map((el) => (el.getAttribute('id') || el.getAttribute('name') || '').toLowerCase())));
  return { links, targets };
""",
    "{links: [{text, href, selector, className, id}], targets: [str]}",
)

SKIP_LINK_ACTIVATE = _probe(
    "skip_link_activate",
    r"""
  const link = document.querySelector(arg.selector);
  const target = document.getElementById(arg.hash)
    || Array.from(document.querySelectorAll('[id]')).find((el) => el.id.toLowerCase() === arg.hash)
    || document.getElementsByName(arg.hash)[0];
  if (!link || !target) return { found: false, focusable: false, focusTransfer: false };
  const focusable = target.tabIndex >= 0 || target.hasAttribute('tabindex');
  link.focus();
  link.click();
  const active = document.activeElement;
  const focusTransfer = active === target || target.contains(active);
  return { found: true, focusable, focusTransfer };
""",
    "{found, focusable, focusTransfer}",
)

SPA_ROUTES = _probe(
    "spa_routes",
    r"""
  const routes = window.__accessScoutRoutes || [];
  window.__accessScoutRoutes = [];
  return routes;
""",
    "[url]",
)

SCROLL_TO_BOTTOM = _probe(
    "scroll_to_bottom",
    r"""
  window.scrollTo(0, document.body ? document.body.scrollHeight : 0);
  return null;
""",
    "null",
)

RULE_ENGINE_RUN = _probe(
    "rule_engine_run",
    r"""
  if (!window.axe) throw new Error('rule engine not loaded');
  return window.axe.run(document, arg || {}).then((res) => ({
    violations: (res.violations || []).map((v) => ({
      id: v.id, impact: v.impact, help: v.help, description: v.description,
      helpUrl: v.helpUrl, tags: v.tags,
      nodes: (v.nodes || []).map((n) => ({ target: (n.target || []).map(String), html: n.html })),
    })),
    incomplete: (res.incomplete || []).map((v) => ({ id: v.id, impact: v.impact })),
  }));
""",
    "{violations: [{id, impact, help, description, helpUrl, tags, nodes: [{target, html}]}], incomplete: [{id, impact}]}",
)

# Installed before any page script runs; records client-side route changes.
SPA_ROUTE_HOOK = r"""
(() => {
  if (window.__accessScoutHooked) return;
  window.__accessScoutHooked = true;
  window.__accessScoutRoutes = [];
  const record = () => { try { window.__accessScoutRoutes.push(location.href); } catch (e) {} };
  for (const method of ['pushState', 'replaceState']) {
    const original = history[method];
    history[method] = function (...args) {
      const result = original.apply(this, args);
      record();
      return result;
    };
  }
  window.addEventListener('hashchange', record);
  window.addEventListener('popstate', record);
})();
"""

_ALL = (
    TEXT_RUNS, FOCUSED_ELEMENT, FOCUSABLE_ELEMENTS, LANDMARKS, LINKS, FORM_CONTROLS,
    HEADINGS, IMAGES, DOCUMENT_META, SKIP_LINK_CANDIDATES, SKIP_LINK_ACTIVATE, SPA_ROUTES, SCROLL_TO_BOTTOM,
    RULE_ENGINE_RUN,
)
_NAMES: Dict[str, str] = {p.script: p.name for p in _ALL}


def probe_name(script: str) -> Optional[str]:
    """Reverse lookup used by page doubles and debug logging."""
    return _NAMES.get(script)


async def run_probe(page: BrowserPage, probe: Probe, arg: Any = None) -> Any:
    """Evaluate *probe* in *page* and return its JSON reply."""
    return await page.evaluate(probe.script, arg)
