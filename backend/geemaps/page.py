import html

import orjson

from .bootstrap import MISSING_DATABASE_MESSAGE
from .layer_panel import render_layer_list_html
from .search import LAT_LNG_TAB_URL
from .session import PageSession
from .settings import DEFAULT_BALLOON_MAX_WIDTH_PIXELS


def _script_json(value) -> str:
    # Keep "</script>" inside data from closing the inline script.
    return orjson.dumps(value).decode().replace("</", "<\\/")


_STYLE = """
      :root {
        font-family: system-ui, -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif;
      }
      body { margin: 0; overflow: hidden; color: #0f172a; }
      #header { height: 48px; padding: 0 1rem; display: flex; align-items: center;
                background: #1e293b; color: #f8fafc; font-weight: 600; }
      #main_table { display: flex; width: 100%; }
      #left_panel_cell { width: 280px; border-right: 1px solid #d1d5db; }
      #left_panel { overflow-y: auto; }
      #collapsePanel { width: 12px; cursor: pointer; background: #f1f5f9; }
      #collapseShim { width: 12px; }
      #map { flex: 1; }
      #map_inner { width: 100%; height: 100%; }
      .panel_title { margin: 0; padding: 0.5rem 0.75rem; font-size: 0.95rem;
                     background: #f1f5f9; border-bottom: 1px solid #e2e8f0; }
      ul.layer_list { list-style: none; margin: 0; padding: 0.25rem 0; }
      ul.layer_list li { display: flex; align-items: center; gap: 0.4rem;
                         padding: 0.25rem 0.75rem; cursor: pointer; }
      ul.layer_list li:hover { background: #e0f2fe; }
      .layer_icon { width: 16px; height: 16px; }
      .search_tab label { display: block; font-size: 0.85rem; margin: 0.4rem 0.75rem 0.2rem; }
      .search_tab input[type='text'] { width: calc(100% - 1.5rem); margin: 0 0.75rem; }
      .search_tab button { margin: 0.4rem 0.75rem; }
"""

_SCRIPT = """
    var geeSession = %(session)s;
    var geeDivIds = %(div_ids)s;
    var geeIconUrls = %(icon_urls)s;
    var geeMap = null;
    var geeInfoWindow = null;
    var geeMarkers = {};

    function geeApi(method, path, body) {
      return fetch('/api/sessions/' + geeSession.sessionId + path, {
        method: method,
        headers: {'Content-Type': 'application/json'},
        body: body === undefined ? undefined : JSON.stringify(body)
      }).then(function(response) {
        if (response.ok) return response.json();
        return response.json().catch(function() { return {}; }).then(function(body) {
          alert(body.error || ('Request failed: ' + response.status));
          return null;
        });
      });
    }

    function cancelEvent(e) {
      if (!e) return;
      e.preventDefault();
      e.stopPropagation();
    }

    function geeResizeDivs() {
      var header = document.getElementById(geeDivIds.header);
      var height = window.innerHeight - (header ? header.offsetHeight : 0);
      ['map', 'leftPanelParent', 'collapsePanel'].forEach(function(key) {
        var el = document.getElementById(geeDivIds[key]);
        if (el) el.style.height = height + 'px';
      });
      var left = document.getElementById(geeDivIds.leftPanel);
      var tabs = document.getElementById(geeDivIds.searchTabs);
      if (left) left.style.height = height + 'px';
      var layers = document.getElementById(geeDivIds.layers);
      if (layers) {
        var used = (tabs ? tabs.offsetHeight : 0) + 80;
        layers.style.maxHeight = Math.max(height - used, 100) + 'px';
      }
      if (geeMap) google.maps.event.trigger(geeMap, 'resize');
    }

    function geeApplyView(view) {
      if (!geeMap || !view) return;
      geeMap.setCenter({lat: view.center.lat, lng: view.center.lng});
      geeMap.setZoom(view.zoom);
      geeMap.overlayMapTypes.clear();
      view.visibleLayers.forEach(function(layerId) {
        geeMap.overlayMapTypes.push(new google.maps.ImageMapType({
          getTileUrl: function(coord, zoom) {
            var tile = geeSession.tileLayers[layerId] || {};
            return geeSession.serverUrl + '/query?request=' + tile.requestType +
                '&channel=' + layerId + '&version=' + (tile.version || 1) +
                '&x=' + coord.x + '&y=' + coord.y + '&z=' + zoom;
          },
          tileSize: new google.maps.Size(256, 256)
        }));
      });
      Object.keys(geeMarkers).forEach(function(id) { geeMarkers[id].setMap(null); });
      geeMarkers = {};
      view.markers.forEach(function(m) {
        var marker = new google.maps.Marker({
          map: geeMap, position: m.position, icon: m.icon, title: m.title, draggable: false
        });
        marker.addListener('click', function() {
          geeApi('POST', '/markers/' + m.id + '/click').then(geeApplyView);
        });
        geeMarkers[m.id] = marker;
      });
      if (geeInfoWindow) geeInfoWindow.close();
      if (view.infoWindow) {
        geeInfoWindow = new google.maps.InfoWindow({
          content: view.infoWindow.content,
          position: view.infoWindow.position,
          maxWidth: %(balloon_width)d
        });
        geeInfoWindow.open(geeMap);
      }
    }

    function geeToggleLayer(e, checkBoxId, layerId, layerName) {
      var cb = document.getElementById(checkBoxId);
      var body = {checkboxId: checkBoxId, layerId: layerId, layerName: layerName};
      if (cb) body.checked = cb.checked;
      geeApi('POST', '/layers/toggle', body).then(function(result) {
        if (!result) return;
        if (!result.ok) {
          alert(result.error);
          return;
        }
        geeApi('GET', '').then(geeApplyView);
      });
      e.stopPropagation();
    }

    function geeInitLayerItems() {
      var items = document.querySelectorAll('ul.layer_list li');
      Array.prototype.forEach.call(items, function(item) {
        var layerId = item.getAttribute('data-layer-id');
        var cb = item.querySelector('input[type=checkbox]');
        cb.addEventListener('click', function(e) {
          geeToggleLayer(e, cb.id, layerId, cb.getAttribute('data-layer-name'));
        });
        item.addEventListener('click', function(e) {
          if (item.getAttribute('data-look-at') === 'none') return;
          geeApi('POST', '/layers/' + encodeURIComponent(layerId) + '/click')
              .then(geeApplyView);
          cancelEvent(e);
        });
      });
    }

    function geeInitSearchTabs() {
      var container = document.getElementById(geeDivIds.searchTabs);
      if (!container || !geeSession.searchTabs) return;
      geeSession.searchTabs.forEach(function(tab) {
        var form = document.createElement('form');
        form.className = 'search_tab';
        var title = document.createElement('h3');
        title.className = 'panel_title';
        title.textContent = tab.tabLabel;
        form.appendChild(title);
        tab.args.forEach(function(arg) {
          var label = document.createElement('label');
          label.textContent = arg.screenLabel;
          var input = document.createElement('input');
          input.type = 'text';
          input.name = arg.urlTag;
          input.value = arg.defaultValue || '';
          form.appendChild(label);
          form.appendChild(input);
        });
        var go = document.createElement('button');
        go.type = 'submit';
        go.textContent = 'Search';
        var clear = document.createElement('button');
        clear.type = 'button';
        clear.textContent = 'Clear';
        clear.addEventListener('click', function() {
          document.getElementById(geeDivIds.searchResults).innerHTML = '';
          geeApi('POST', '/search/clear').then(geeApplyView);
        });
        form.appendChild(go);
        form.appendChild(clear);
        form.addEventListener('submit', function(e) {
          cancelEvent(e);
          if (tab.url === '%(latlng_url)s') {
            geeApi('POST', '/search/latlng', {latlng: form.elements.latlng.value})
                .then(function(result) {
                  if (!result) return;
                  if (result.error) { alert(result.error); return; }
                  geeApplyView(result);
                });
          }
        });
        container.appendChild(form);
      });
    }

    function geeInitMap() {
      geeResizeDivs();
      geeMap = new google.maps.Map(document.getElementById(geeDivIds.mapInner), {
        center: geeSession.view.center,
        zoom: geeSession.view.zoom
      });
      geeInitLayerItems();
      geeApplyView(geeSession.view);
      if (geeSession.searchTimeoutMs !== null) geeInitSearchTabs();
      geeResizeDivs();
    }

    window.addEventListener('resize', geeResizeDivs);
"""


def render_map_page(session: PageSession, maps_api_url: str, title: str = "GEE Maps") -> str:
    """Full HTML page for a bootstrapped session."""
    ids = session.div_ids
    div_ids = {
        "header": ids.header,
        "map": ids.map,
        "mapInner": ids.map_inner,
        "leftPanelParent": ids.left_panel_parent,
        "leftPanel": ids.left_panel,
        "searchTabs": ids.search_tabs,
        "searchTitle": ids.search_title,
        "searchResults": ids.search_results,
        "layersTitle": ids.layers_title,
        "layers": ids.layers,
        "collapsePanel": ids.collapse_panel,
        "collapseShim": ids.collapse_shim,
    }

    panel_parts = []
    for div_id in session.left_panel_divs:
        if div_id == ids.layers:
            panel_parts.append(
                f"<div id='{div_id}'>{render_layer_list_html(session.layer_panel.layer_list)}</div>"
            )
        elif div_id == ids.search_title:
            panel_parts.append(f"<h2 id='{div_id}' class='panel_title'>Search Results</h2>")
        elif div_id == ids.layers_title:
            panel_parts.append(f"<h2 id='{div_id}' class='panel_title'>Layers</h2>")
        else:
            panel_parts.append(f"<div id='{div_id}'></div>")

    script = _SCRIPT % {
        "session": _script_json(session.to_response().model_dump(mode="json")),
        "div_ids": _script_json(div_ids),
        "icon_urls": _script_json(session.icon_urls.as_dict()),
        "balloon_width": DEFAULT_BALLOON_MAX_WIDTH_PIXELS,
        "latlng_url": LAT_LNG_TAB_URL,
    }

    return f"""<!DOCTYPE html>
<html lang='en'>
  <head>
    <meta charset='utf-8' />
    <meta name='viewport' content='width=device-width, initial-scale=1' />
    <title>{html.escape(title)}</title>
    <style>{_STYLE}    </style>
    <script src='{html.escape(maps_api_url)}'></script>
  </head>
  <body onload='geeInitMap()'>
    <div id='{ids.header}'>{html.escape(title)}</div>
    <div id='main_table'>
      <div id='{ids.left_panel_parent}'>
        <div id='{ids.left_panel}'>
          {''.join(panel_parts)}
        </div>
      </div>
      <div id='{ids.collapse_panel}'><img src='{html.escape(session.icon_urls.collapse)}' alt='' /></div>
      <div id='{ids.collapse_shim}'></div>
      <div id='{ids.map}'><div id='{ids.map_inner}'></div></div>
    </div>
    <script>{script}    </script>
  </body>
</html>
"""


def render_config_error_page() -> str:
    """Page that only alerts; the map cannot start without server definitions."""
    return f"""<!DOCTYPE html>
<html lang='en'>
  <head>
    <meta charset='utf-8' />
    <title>GEE Maps</title>
  </head>
  <body>
    <script>alert({_script_json(MISSING_DATABASE_MESSAGE)});</script>
  </body>
</html>
"""
