# core/page_scripts.py
# Scripts evaluated in page context. Element handles arrive as arguments[n].

# Locates the native <select> behind a dropdown handle, whether the handle is
# the select itself, a custom element with a shadow root, or a plain wrapper.
_FIND_SELECT = """
function findSelect(el) {
    if (!el) return null;
    if (el.tagName === 'SELECT') return el;
    if (el.shadowRoot) {
        var inner = el.shadowRoot.querySelector('select');
        if (inner) return inner;
    }
    return el.querySelector('select');
}
"""

READ_OPTIONS = _FIND_SELECT + """
var select = findSelect(arguments[0]);
if (!select) return [];
return Array.from(select.options || [])
    .filter(function (opt) { return !opt.disabled && opt.value !== undefined && opt.value !== null; })
    .map(function (opt, i) {
        return {value: opt.value, label: (opt.textContent || opt.innerText || '').trim(), index: i};
    });
"""

SET_VALUE = _FIND_SELECT + """
var select = findSelect(arguments[0]);
if (!select) return false;
select.value = arguments[1];
['change', 'input', 'click'].forEach(function (name) {
    select.dispatchEvent(new Event(name, {bubbles: true}));
});
return true;
"""

READ_VALUE = _FIND_SELECT + """
var select = findSelect(arguments[0]);
return select ? select.value : null;
"""

READY_STATE = "return document.readyState;"

SCROLL_TO_TOP = "window.scrollTo(0, 0);"

# Tile strategies, tried in order; each returns a (possibly empty) element list.
BOLT_TILES = "return Array.from(document.querySelectorAll('bolt-tile'));"

CONTAINER_TILES = """
var containers = ['.nw-container', 'main', '[role="main"]', '.main-content', '.content-area'];
for (var i = 0; i < containers.length; i++) {
    var container = document.querySelector(containers[i]);
    if (!container) continue;
    var found = container.querySelectorAll('a[href*="/topics/"], article, .card, [class*="tile"]');
    if (found.length > 0) return Array.from(found);
}
return [];
"""

GRID_TILES = """
var grids = document.querySelectorAll('[class*="grid"], [class*="row"], .results, .items, .products');
for (var i = 0; i < grids.length; i++) {
    var children = Array.from(grids[i].children).filter(function (child) {
        var rect = child.getBoundingClientRect();
        return rect.width > 200 && rect.height > 150;
    });
    if (children.length > 0) return children;
}
return [];
"""

CONTENT_LINK_TILES = """
return Array.from(document.querySelectorAll('a')).filter(function (link) {
    var hasImage = link.querySelector('img') || window.getComputedStyle(link).backgroundImage !== 'none';
    var rect = link.getBoundingClientRect();
    return hasImage && link.textContent.trim().length > 20 && rect.width > 150 && rect.height > 100;
});
"""

TILE_STRATEGIES = [
    ('bolt-tile direct', BOLT_TILES),
    ('container children', CONTAINER_TILES),
    ('grid container', GRID_TILES),
    ('content links', CONTENT_LINK_TILES),
]

# arguments[0]: tile elements, arguments[1]: sample size
DESCRIBE_TILES = """
var tiles = arguments[0] || [];
var sampleSize = arguments[1];
var visible = tiles.filter(function (tile) {
    try {
        var style = window.getComputedStyle(tile);
        var rect = tile.getBoundingClientRect();
        var shown = style.display !== 'none' && style.visibility !== 'hidden' &&
            parseFloat(style.opacity) > 0.1 && rect.width > 10 && rect.height > 10;
        var hasContent = tile.textContent.trim().length > 5 || tile.innerHTML.indexOf('bolt-tile') !== -1 ||
            tile.querySelector('img') || tile.querySelector('h1, h2, h3, h4');
        return shown && !!hasContent;
    } catch (e) {
        return false;
    }
});
var titleSelectors = ['.bolt-tile-wc--label', '.bolt-tile-wc--title', '[class*="title"]',
    '[class*="label"]', 'h1, h2, h3, h4', '.card-title', '.heading'];
var samples = visible.slice(0, sampleSize).map(function (tile, i) {
    var title = '';
    for (var s = 0; s < titleSelectors.length && !title; s++) {
        var el = tile.querySelector(titleSelectors[s]);
        if (el && el.textContent.trim()) title = el.textContent.trim().substring(0, 100);
    }
    if (!title) {
        var lines = tile.textContent.split('\\n').filter(function (l) { return l.trim().length > 10; });
        title = lines.length > 0 ? lines[0].trim().substring(0, 100) : 'Untitled';
    }
    var link = tile.querySelector('a');
    var parentLink = tile.closest('a');
    var href = tile.getAttribute('href') || (link && link.getAttribute('href')) ||
        (parentLink && parentLink.getAttribute('href')) || '';
    var img = tile.querySelector('img');
    var image = img ? (img.getAttribute('src') || img.getAttribute('data-src') || '') : '';
    if (!image) {
        var bg = window.getComputedStyle(tile).backgroundImage;
        if (bg && bg !== 'none') image = bg.replace(/url\\(["']?|["']?\\)/g, '');
    }
    var rect = tile.getBoundingClientRect();
    return {
        index: i + 1, title: title, href: href, image: image,
        tag_name: tile.tagName, class_name: String(tile.className || '').substring(0, 50),
        width: Math.round(rect.width), height: Math.round(rect.height)
    };
});
return {visible: visible.length, samples: samples};
"""

# arguments[0]: known phrasings, arguments[1]: canonical phrasing
# Returns every element whose text holds a phrasing, in document order.
# nested_match marks wrappers: some child element holds the same phrasing.
NO_RESULTS_PROBE = """
var phrasings = arguments[0];
var canonical = arguments[1];
function isShown(el) {
    var style = window.getComputedStyle(el);
    var rect = el.getBoundingClientRect();
    return style.display !== 'none' && style.visibility !== 'hidden' &&
        parseFloat(style.opacity) > 0 && rect.width > 0 && rect.height > 0;
}
function phrasingIn(text) {
    for (var p = 0; p < phrasings.length; p++) {
        if (text.indexOf(phrasings[p]) !== -1) return phrasings[p];
    }
    return null;
}
function childHolds(el, phrase) {
    for (var c = 0; c < el.children.length; c++) {
        if ((el.children[c].textContent || '').indexOf(phrase) !== -1) return true;
    }
    return false;
}
function collect(elements, notification) {
    var found = [];
    elements.forEach(function (el) {
        var text = (el.textContent || '').trim();
        var phrase = text ? phrasingIn(text) : null;
        if (!phrase) return;
        found.push({text: text.substring(0, 500), element: notification ? 'bolt-notification' : el.tagName,
                    canonical: text.indexOf(canonical) !== -1, visible: isShown(el),
                    nested_match: childHolds(el, phrase), notification: notification});
    });
    return found;
}
return collect(Array.from(document.querySelectorAll('bolt-notification')), true)
    .concat(collect(Array.from(document.querySelectorAll('body *')), false));
"""

HIDDEN_TILE_COUNT = """
return Array.from(document.querySelectorAll('bolt-tile')).filter(function (tile) {
    var style = window.getComputedStyle(tile);
    return style.display === 'none' || style.visibility === 'hidden' || style.opacity === '0';
}).length;
"""

# arguments[0]: sort control selectors
SORT_CONTROLS = """
var selectors = arguments[0];
var seen = [];
var controls = [];
selectors.forEach(function (selector) {
    document.querySelectorAll(selector).forEach(function (el) {
        if (seen.indexOf(el) === -1) seen.push(el);
    });
});
seen.forEach(function (el) {
    var select = el.tagName === 'SELECT' ? el : (el.shadowRoot && el.shadowRoot.querySelector('select')) || el.querySelector('select');
    var options = select ? Array.from(select.options).map(function (o) {
        return {label: o.textContent.trim(), value: o.value};
    }) : [];
    controls.push({tag_name: el.tagName, class_name: String(el.className || '').substring(0, 50), options: options});
});
return {count: seen.length, controls: controls};
"""
